"""
Typed DAO bound to a single model class.
"""

from typing import Any, Generic, List, Optional, Type, TypeVar

from search.example_options import ExampleOptions
from search.filter import Filter
from search.search import ISearch
from search.search_result import SearchResult
from .base_dao import BaseDAO

T = TypeVar('T')


class GenericDAO(BaseDAO, Generic[T]):
    """
    DAO for one model class.

    Searches always run against the bound model; a search with a different
    class of its own is rejected.

    Usage:
        class PersonDAO(GenericDAO[Person]):
            def __init__(self, session_factory=None):
                super().__init__(Person, session_factory)
    """

    def __init__(self, model: Type[T], session_factory=None):
        """
        Initialize the DAO.

        Args:
            model: SQLAlchemy model class
            session_factory: scoped_session, sessionmaker or Session
        """
        super().__init__(session_factory)
        self.model = model

    def find(self, id: Any) -> Optional[T]:
        """
        Retrieve an entity by its identifier.

        Args:
            id: Primary key value, a tuple for composite keys

        Returns:
            Model instance or None if not found
        """
        return self._get(self.model, id)

    def find_many(self, *ids: Any) -> List[Optional[T]]:
        """Retrieve entities by identifier, None where not found."""
        return self._get_many(self.model, *ids)

    def get_reference(self, id: Any) -> T:
        """
        Retrieve an entity that must exist.

        Raises:
            EntityNotFoundError: If there is no entity with the identifier
        """
        return self._load(self.model, id)

    def get_references(self, *ids: Any) -> List[Optional[T]]:
        return self._load_many(self.model, *ids)

    def find_all(self) -> List[T]:
        return self._all(self.model)

    def save(self, entity: T) -> bool:
        """
        Insert or update an entity depending on whether its row exists.

        Returns:
            True if the entity was inserted, False if it was updated
        """
        return self._save_or_update_is_new(entity)

    def save_many(self, *entities: T) -> List[bool]:
        return self._save_or_update_is_new_many(*entities)

    def remove(self, entity: T) -> bool:
        return self._delete_entity(entity)

    def remove_many(self, *entities: T) -> None:
        self._delete_entities(*entities)

    def remove_by_id(self, id: Any) -> bool:
        return self._delete_by_id(self.model, id)

    def remove_by_ids(self, *ids: Any) -> None:
        self._delete_by_ids(self.model, *ids)

    def search(self, search: ISearch) -> List[Any]:
        return self._search(search, self.model)

    def count(self, search: Optional[ISearch] = None) -> int:
        """
        Count the results of a search, or every row of the model when no
        search is given.
        """
        if search is None:
            return self._count_all(self.model)
        return self._count(search, self.model)

    def search_and_count(self, search: ISearch) -> SearchResult:
        return self._search_and_count(search, self.model)

    def search_unique(self, search: ISearch) -> Optional[Any]:
        return self._search_unique(search, self.model)

    def is_attached(self, entity: T) -> bool:
        return self._session_contains(entity)

    def refresh(self, *entities: T) -> None:
        self._refresh(*entities)

    def flush(self) -> None:
        self._flush()

    def get_filter_from_example(self, example: T, options: Optional[ExampleOptions] = None) -> Optional[Filter]:
        return self._get_filter_from_example(example, options)
