"""
Untyped DAO working on any mapped class.
"""

from typing import Any, List, Optional

from search.example_options import ExampleOptions
from search.filter import Filter
from search.search import ISearch
from search.search_result import SearchResult
from .base_dao import BaseDAO


class GeneralDAO(BaseDAO):
    """
    DAO for every model class of a session factory.

    Operations take the entity type explicitly where it cannot be derived
    from an entity. Searches run against the search's own class.
    """

    def find(self, entity_type: type, id: Any) -> Optional[Any]:
        """
        Retrieve an entity by type and identifier.

        Returns:
            Model instance or None if not found
        """
        return self._get(entity_type, id)

    def find_many(self, entity_type: type, *ids: Any) -> List[Optional[Any]]:
        return self._get_many(entity_type, *ids)

    def get_reference(self, entity_type: type, id: Any) -> Any:
        return self._load(entity_type, id)

    def get_references(self, entity_type: type, *ids: Any) -> List[Optional[Any]]:
        return self._load_many(entity_type, *ids)

    def find_all(self, entity_type: type) -> List[Any]:
        return self._all(entity_type)

    def save(self, entity: Any) -> bool:
        """
        Insert or update an entity depending on whether its row exists.

        Returns:
            True if the entity was inserted, False if it was updated
        """
        return self._save_or_update_is_new(entity)

    def save_many(self, *entities: Any) -> List[bool]:
        """Insert or update entities of any mix of classes."""
        return self._save_or_update_is_new_many(*entities)

    def remove(self, entity: Any) -> bool:
        return self._delete_entity(entity)

    def remove_many(self, *entities: Any) -> None:
        self._delete_entities(*entities)

    def remove_by_id(self, entity_type: type, id: Any) -> bool:
        return self._delete_by_id(entity_type, id)

    def remove_by_ids(self, entity_type: type, *ids: Any) -> None:
        self._delete_by_ids(entity_type, *ids)

    def search(self, search: ISearch) -> List[Any]:
        return self._search(search)

    def count(self, search: ISearch) -> int:
        return self._count(search)

    def search_and_count(self, search: ISearch) -> SearchResult:
        return self._search_and_count(search)

    def search_unique(self, search: ISearch) -> Optional[Any]:
        return self._search_unique(search)

    def is_attached(self, entity: Any) -> bool:
        return self._session_contains(entity)

    def refresh(self, *entities: Any) -> None:
        self._refresh(*entities)

    def flush(self) -> None:
        self._flush()

    def get_filter_from_example(self, example: Any, options: Optional[ExampleOptions] = None) -> Optional[Filter]:
        return self._get_filter_from_example(example, options)
