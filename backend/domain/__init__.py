"""
Domain Layer

Value types shared by the search descriptors and the search processor,
kept free of any persistence concerns.

Structure:
- value_objects/: Immutable enum-like operator types
"""
