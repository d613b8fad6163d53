"""
Base DAO wrapping the current SQLAlchemy session.

Every operation is a thin delegation to the session: add, delete, get,
merge, refresh, flush and identifier queries. The search operations
delegate to the SearchProcessor shared by the session factory.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session, make_transient, make_transient_to_detached, scoped_session, sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from config.dao_config import get_exists_batch_size
from constants import UNSAVED_ID_VALUES
from exceptions import ConfigurationError, EntityNotFoundError, ValidationError
from search.example_options import ExampleOptions
from search.filter import Filter
from search.metadata import MetadataUtil
from search.processor import SearchProcessor
from search.search import ISearch
from search.search_result import SearchResult
from utils.error_handlers import translate_errors
from utils.logging_utils import StructuredLogger, log_operation

logger = StructuredLogger(__name__)


class BaseDAO:
    """
    Base class for DAOs that work on the current session of a session factory.

    The factory may be a scoped_session (its current session is used), a
    sessionmaker (wrapped in a scoped_session) or a Session used as is.
    Operations are protected; GenericDAO and GeneralDAO expose them.
    """

    def __init__(self, session_factory=None):
        self._session_factory = None
        self._search_processor: Optional[SearchProcessor] = None
        self._metadata_util: Optional[MetadataUtil] = None
        self.exists_batch_size = get_exists_batch_size()
        if session_factory is not None:
            self.set_session_factory(session_factory)

    def set_session_factory(self, session_factory) -> None:
        if isinstance(session_factory, sessionmaker):
            session_factory = scoped_session(session_factory)
        self._session_factory = session_factory
        self._search_processor = SearchProcessor.get_instance_for_session_factory(session_factory)
        self._metadata_util = self._search_processor.metadata

    @property
    def session_factory(self):
        return self._session_factory

    @property
    def session(self) -> Session:
        """The current session."""
        if self._session_factory is None:
            raise ConfigurationError(f"No session factory configured for {type(self).__name__}")
        if isinstance(self._session_factory, Session):
            return self._session_factory
        return self._session_factory()

    @property
    def metadata_util(self) -> MetadataUtil:
        if self._metadata_util is None:
            raise ConfigurationError(f"No session factory configured for {type(self).__name__}")
        return self._metadata_util

    @property
    def search_processor(self) -> SearchProcessor:
        if self._search_processor is None:
            raise ConfigurationError(f"No session factory configured for {type(self).__name__}")
        return self._search_processor

    # Save

    @translate_errors("save")
    def _save(self, entity: Any) -> Any:
        """
        Insert an entity and flush, so the identifier is assigned
        immediately (generated, or the assigned value). A detached entity
        is made transient first so its row is inserted again.

        Returns:
            The identifier of the saved entity
        """
        if entity is None:
            raise ValueError("attempt to save null entity")
        if sa_inspect(entity).detached:
            make_transient(entity)
        session = self.session
        session.add(entity)
        session.flush()
        entity_id = self.metadata_util.get_id(entity)
        logger.debug("Saved entity", extra={
            "entity_type": type(entity).__name__,
            "entity_id": entity_id,
        })
        return entity_id

    def _save_many(self, *entities: Any) -> None:
        for entity in entities:
            self._save(entity)

    @translate_errors("save_or_update")
    def _save_or_update(self, entity: Any) -> None:
        """
        Save or update depending on the entity's identifier.

        - already in the session: nothing to do
        - no identifier, or the unsaved value 0: save
        - otherwise: update
        """
        if entity is None:
            raise ValueError("attempt to saveOrUpdate with null entity")
        if self._session_contains(entity):
            return
        if self.metadata_util.get_id(entity) in UNSAVED_ID_VALUES:
            self._save(entity)
        else:
            self._update(entity)

    @translate_errors("save_or_update")
    def _save_or_update_is_new(self, entity: Any) -> bool:
        """
        Update the entity if a row with its identifier exists, save it otherwise.

        Returns:
            True if the entity was saved, False if it was updated
        """
        if entity is None:
            raise ValueError("attempt to saveOrUpdate with null entity")

        entity_id = self.metadata_util.get_id(entity)
        if self._session_contains(entity):
            return False

        if entity_id in UNSAVED_ID_VALUES or not self._exists(entity):
            self._save(entity)
            return True
        self._update(entity)
        return False

    @log_operation("save_or_update_batch")
    @translate_errors("save_or_update")
    def _save_or_update_is_new_many(self, *entities: Any) -> List[bool]:
        """
        Save or update each entity depending on whether a row with its
        identifier exists.

        Returns:
            List aligned with the input: True where the entity was saved,
            False where it was updated
        """
        session = self.session
        exists: List[Optional[bool]] = [None] * len(entities)

        # In the session means it exists; no identifier means it does not
        for index, entity in enumerate(entities):
            if entity is None:
                raise ValueError("attempt to saveOrUpdate with null entity")
            if entity in session:
                exists[index] = True
            elif self.metadata_util.get_id(entity) in UNSAVED_ID_VALUES:
                exists[index] = False

        # The rest may exist; check them with one batched query per class
        may_exist: Dict[type, List[int]] = {}
        for index, entity in enumerate(entities):
            if exists[index] is None:
                entity_class = self.metadata_util.get_unproxied_class(entity)
                may_exist.setdefault(entity_class, []).append(index)

        for entity_class, indexes in may_exist.items():
            ids = [self.metadata_util.get_id(entities[index]) for index in indexes]
            for index, found in zip(indexes, self._exists_many(entity_class, *ids)):
                exists[index] = found

        is_new = []
        for entity, found in zip(entities, exists):
            if found:
                self._update(entity)
                is_new.append(False)
            else:
                self._save(entity)
                is_new.append(True)

        logger.debug("Saved or updated entities", extra={
            "saved": is_new.count(True),
            "updated": is_new.count(False),
        })
        return is_new

    @translate_errors("persist")
    def _persist(self, *entities: Any) -> None:
        """Make transient entities pending; the insert happens at flush time."""
        session = self.session
        for entity in entities:
            if entity is None:
                raise ValueError("attempt to persist null entity")
            session.add(entity)

    # Delete

    @translate_errors("delete_by_id")
    def _delete_by_id(self, entity_type: type, id: Any) -> bool:
        """
        Delete the entity of the given type with the given identifier.

        Returns:
            True if the entity was found and deleted, False if not found
        """
        if id is None:
            return False
        entity_type = self.metadata_util.get_unproxied_class(entity_type)
        entity = self.session.get(entity_type, id)
        if entity is None:
            return False
        self.session.delete(entity)
        logger.debug("Deleted entity", extra={"entity_type": entity_type.__name__, "entity_id": id})
        return True

    @log_operation("delete_by_ids")
    @translate_errors("delete_by_ids")
    def _delete_by_ids(self, entity_type: type, *ids: Any) -> None:
        """Delete every entity of the given type having one of the identifiers."""
        entity_type = self.metadata_util.get_unproxied_class(entity_type)
        wanted = [id for id in ids if id is not None]
        if not wanted:
            return
        session = self.session
        for entity in session.query(entity_type).filter(self._id_criterion(entity_type, wanted)).all():
            session.delete(entity)

    @translate_errors("delete_entity")
    def _delete_entity(self, entity: Any) -> bool:
        """
        Delete the row of the given entity, which may be detached.

        Returns:
            True if the row was found and deleted, False if not found
        """
        if entity is None:
            return False
        entity_id = self.metadata_util.get_id(entity)
        if entity_id is None:
            return False
        persistent = self.session.get(self.metadata_util.get_unproxied_class(entity), entity_id)
        if persistent is None:
            return False
        self.session.delete(persistent)
        return True

    @translate_errors("delete_entities")
    def _delete_entities(self, *entities: Any) -> None:
        session = self.session
        for entity in entities:
            if entity is not None:
                session.delete(entity)

    # Get and load

    @translate_errors("get")
    def _get(self, entity_type: type, id: Any) -> Optional[Any]:
        """Return the entity with the given identifier, or None if there is none."""
        if id is None:
            return None
        entity_type = self.metadata_util.get_unproxied_class(entity_type)
        return self.session.get(entity_type, id)

    @translate_errors("get")
    def _get_many(self, entity_type: type, *ids: Any) -> List[Optional[Any]]:
        """
        Return the entities with the given identifiers using a single query.

        Returns:
            List aligned with ids, holding None where no entity was found
        """
        entity_type = self.metadata_util.get_unproxied_class(entity_type)
        result: List[Optional[Any]] = [None] * len(ids)
        keys = [None if id is None else self.metadata_util.id_to_key(entity_type, id) for id in ids]
        wanted = [key for key in keys if key is not None]
        if not wanted:
            return result

        query = self.session.query(entity_type).filter(
            self._key_criterion(self.metadata_util.get_id_attributes(entity_type), wanted)
        )
        for entity in query.all():
            entity_key = self.metadata_util.id_to_key(entity_type, self.metadata_util.get_id(entity))
            for index, key in enumerate(keys):
                if key == entity_key:
                    result[index] = entity
        return result

    def _load(self, entity_type: type, id: Any) -> Any:
        """
        Return the entity with the given identifier, which must exist.

        Raises:
            EntityNotFoundError: If there is no matching row
        """
        entity = self._get(entity_type, id)
        if entity is None:
            raise EntityNotFoundError(self.metadata_util.get_unproxied_class(entity_type), id)
        return entity

    def _load_many(self, entity_type: type, *ids: Any) -> List[Optional[Any]]:
        """Load each identifier; None identifiers give None."""
        return [None if id is None else self._load(entity_type, id) for id in ids]

    def _load_into(self, transient_entity: Any, id: Any) -> None:
        """
        Copy the persistent column state for the identifier into the given
        transient instance.

        Raises:
            EntityNotFoundError: If there is no matching row
        """
        entity_type = self.metadata_util.get_unproxied_class(transient_entity)
        persistent = self._load(entity_type, id)
        for prop in self.metadata_util.get_mapper(entity_type).column_attrs:
            setattr(transient_entity, prop.key, getattr(persistent, prop.key))

    @translate_errors("all")
    def _all(self, entity_type: type) -> List[Any]:
        entity_type = self.metadata_util.get_unproxied_class(entity_type)
        return self.session.query(entity_type).all()

    # Update and merge

    @translate_errors("update")
    def _update(self, *entities: Any) -> None:
        """
        Associate detached entities with the session so their state is
        written at flush time.

        A transient entity with an identifier is treated as a detached copy
        of that row and every column it has a value for is written. Entities
        already in the session need nothing. An entity whose identity is
        already held by another instance in the session cannot be updated.
        """
        session = self.session
        for entity in entities:
            if entity is None:
                raise ValueError("attempt to update null entity")
            if entity in session:
                continue

            state = sa_inspect(entity)
            if state.transient:
                if self.metadata_util.get_id(entity) is None:
                    raise ValidationError(
                        f"Cannot update {type(entity).__name__} without an identifier"
                    )
                id_names = set(self.metadata_util.get_id_property_names(type(entity)))
                loaded = [
                    prop.key for prop in state.mapper.column_attrs
                    if prop.key in state.dict and prop.key not in id_names
                ]
                make_transient_to_detached(entity)
                session.add(entity)
                for key in loaded:
                    flag_modified(entity, key)
            else:
                session.add(entity)

            logger.debug("Updated entity", extra={
                "entity_type": type(entity).__name__,
                "entity_id": self.metadata_util.get_id(entity),
            })

    @translate_errors("merge")
    def _merge(self, entity: Any) -> Any:
        """
        Copy the state of the entity onto the persistent instance with the
        same identifier, loading or creating it as needed.

        Returns:
            The persistent instance; the given entity stays unattached
        """
        return self.session.merge(entity)

    # Search

    def _check_search(self, search: Optional[ISearch], search_class: Optional[type] = None) -> None:
        if search is None:
            raise ValueError("Search is null.")
        if search_class is None:
            if search.search_class is None:
                raise ValueError("Search class is null.")
        elif search.search_class is not None and search.search_class != search_class:
            raise ValueError(f"Search class does not match expected type: {search_class.__name__}")

    @translate_errors("search")
    def _search(self, search: ISearch, search_class: Optional[type] = None) -> List[Any]:
        """
        Search using the filters, sorts, fields and paging of the search.

        When search_class is given it is used instead of the search's own
        class, which must then be unset or equal.
        """
        self._check_search(search, search_class)
        return self.search_processor.search(self.session, search, search_class)

    @translate_errors("count")
    def _count(self, search: ISearch, search_class: Optional[type] = None) -> int:
        """Number of results the search would return without paging."""
        self._check_search(search, search_class)
        return self.search_processor.count(self.session, search, search_class)

    @translate_errors("count")
    def _count_all(self, entity_type: type) -> int:
        """Number of rows of the given entity type."""
        entity_type = self.metadata_util.get_unproxied_class(entity_type)
        return self.session.query(entity_type).count()

    @translate_errors("search_and_count")
    def _search_and_count(self, search: ISearch, search_class: Optional[type] = None) -> SearchResult:
        self._check_search(search, search_class)
        return self.search_processor.search_and_count(self.session, search, search_class)

    @translate_errors("search_unique")
    def _search_unique(self, search: ISearch, search_class: Optional[type] = None) -> Any:
        """
        Return the single result of the search, or None if nothing matches.

        Raises:
            NonUniqueResultError: If more than one result matches
        """
        self._check_search(search, search_class)
        return self.search_processor.search_unique(self.session, search, search_class)

    def _get_filter_from_example(self, example: Any, options: Optional[ExampleOptions] = None) -> Optional[Filter]:
        return self.search_processor.get_filter_from_example(example, options)

    # Session

    def _session_contains(self, entity: Any) -> bool:
        """True if the entity is attached to the current session."""
        if entity is None:
            return False
        return entity in self.session

    @translate_errors("flush")
    def _flush(self) -> None:
        self.session.flush()

    @translate_errors("refresh")
    def _refresh(self, *entities: Any) -> None:
        """Reload the state of each entity from the datastore."""
        session = self.session
        for entity in entities:
            session.refresh(entity)

    # Existence

    def _exists(self, entity: Any) -> bool:
        if entity is None:
            raise ValueError("Entity is null.")
        if self._session_contains(entity):
            return True
        return self._exists_by_id(
            self.metadata_util.get_unproxied_class(entity),
            self.metadata_util.get_id(entity),
        )

    def _exists_by_id(self, entity_type: type, id: Any) -> bool:
        if entity_type is None:
            raise ValueError("Type is null.")
        if id is None:
            return False
        return self._exists_many(entity_type, id)[0]

    @translate_errors("exists")
    def _exists_many(self, entity_type: type, *ids: Any) -> List[bool]:
        """
        Check which identifiers have a row, batching the queries.

        Returns:
            List aligned with ids; a repeated identifier is flagged at every position
        """
        if entity_type is None:
            raise ValueError("Type is null.")
        entity_type = self.metadata_util.get_unproxied_class(entity_type)
        attributes = self.metadata_util.get_id_attributes(entity_type)

        keys = [None if id is None else self.metadata_util.id_to_key(entity_type, id) for id in ids]
        unique_keys = list(dict.fromkeys(key for key in keys if key is not None))

        found = set()
        session = self.session
        for start in range(0, len(unique_keys), self.exists_batch_size):
            chunk = unique_keys[start:start + self.exists_batch_size]
            rows = session.query(*attributes).filter(self._key_criterion(attributes, chunk)).all()
            found.update(tuple(row) for row in rows)

        return [key is not None and key in found for key in keys]

    # Identifier criteria

    def _id_criterion(self, entity_type: type, ids: List[Any]):
        keys = [self.metadata_util.id_to_key(entity_type, id) for id in ids]
        return self._key_criterion(self.metadata_util.get_id_attributes(entity_type), keys)

    def _key_criterion(self, attributes: list, keys: List[tuple]):
        # OR of per-key equalities for composite keys
        if len(attributes) == 1:
            return attributes[0].in_([key[0] for key in keys])
        return or_(*[
            and_(*[attribute == value for attribute, value in zip(attributes, key)])
            for key in keys
        ])
