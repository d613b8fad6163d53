"""
Entity metadata helpers built on SQLAlchemy's runtime inspection API.
"""

from typing import Any, List, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Mapper

from exceptions import MetadataError


class MetadataUtil:
    """
    Answers identifier and mapping questions about entities.

    Single-column identifiers are returned as plain values, composite
    identifiers as tuples in primary key column order.
    """

    def get_mapper(self, entity_or_type: Any) -> Mapper:
        cls = entity_or_type if isinstance(entity_or_type, type) else type(entity_or_type)
        try:
            mapper = sa_inspect(cls)
        except NoInspectionAvailable:
            raise MetadataError(cls)
        if not isinstance(mapper, Mapper):
            raise MetadataError(cls)
        return mapper

    def is_entity(self, entity_or_type: Any) -> bool:
        try:
            self.get_mapper(entity_or_type)
        except MetadataError:
            return False
        return True

    def get_unproxied_class(self, entity_or_type: Any) -> type:
        """Return the mapped class of an entity or entity type."""
        return self.get_mapper(entity_or_type).class_

    def get_id_property_names(self, entity_type: type) -> List[str]:
        mapper = self.get_mapper(entity_type)
        return [mapper.get_property_by_column(column).key for column in mapper.primary_key]

    def get_id_attributes(self, entity_type: type) -> list:
        """Instrumented attributes of the primary key, usable in query criteria."""
        cls = self.get_unproxied_class(entity_type)
        return [getattr(cls, name) for name in self.get_id_property_names(cls)]

    def get_id(self, entity: Any) -> Optional[Any]:
        """
        Get the identifier of an entity.

        Returns:
            The identifier, or None when no primary key value is set
        """
        if entity is None:
            raise ValueError("Entity is null.")
        mapper = self.get_mapper(entity)
        state = sa_inspect(entity)
        if state.key is not None:
            values = state.identity
        else:
            values = mapper.primary_key_from_instance(entity)
        return self.normalize_id(values)

    def normalize_id(self, values) -> Optional[Any]:
        if values is None:
            return None
        if not isinstance(values, (tuple, list)):
            return values
        if all(value is None for value in values):
            return None
        if len(values) == 1:
            return values[0]
        return tuple(values)

    def id_to_key(self, entity_type: type, id: Any) -> tuple:
        """Turn an identifier into a tuple of primary key values."""
        size = len(self.get_mapper(entity_type).primary_key)
        if isinstance(id, (tuple, list)):
            if len(id) != size:
                raise ValueError(
                    f"Identifier {id!r} has {len(id)} values, "
                    f"{entity_type.__name__} has {size} primary key columns"
                )
            return tuple(id)
        if size != 1:
            raise ValueError(f"{entity_type.__name__} has a composite identifier, got {id!r}")
        return (id,)
