"""
Data Transfer Objects (DTOs) Layer

Pydantic models describing searches and their results in plain data.

Structure:
- request/: search parameters coming in
- response/: search results going out
"""
