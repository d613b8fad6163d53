"""
Search Processor

Translates ISearch descriptors into SQLAlchemy select() statements and runs
them on a session.

Filters are rendered through relationship comparators (has() for
references, any() for collections), so a filter on an association never
multiplies the root rows. Sorts and fields need the associated columns in
the select list and are resolved with aliased outer joins instead.
"""

import weakref
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, distinct, func, not_, or_, select, true
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import String
from sqlalchemy.orm import ColumnProperty, RelationshipProperty, Session, aliased, selectinload

from constants import MatchMode, ResultMode, ROOT_PROPERTY
from domain.value_objects import FieldOperator, FilterOperator
from exceptions import NonUniqueResultError, ValidationError
from utils.logging_utils import StructuredLogger
from .example_options import ExampleOptions
from .field import Field
from .filter import Filter
from .metadata import MetadataUtil
from .search import ISearch
from .search_result import SearchResult

logger = StructuredLogger(__name__)

_AGGREGATES = {
    FieldOperator.MAX: func.max,
    FieldOperator.MIN: func.min,
    FieldOperator.SUM: func.sum,
    FieldOperator.AVG: func.avg,
}


class _JoinContext:
    """Outer joins needed by the sorts and fields of one statement."""

    def __init__(self, processor: "SearchProcessor", root: type):
        self.processor = processor
        self.root = root
        self.aliases: Dict[str, Any] = {}
        self.joins: list = []

    def resolve(self, path: str) -> Tuple[Any, Any, bool, bool]:
        """
        Resolve a property path to a selectable expression.

        Returns:
            (expression, mapped property, traverses a collection, is an entity)
        """
        if path == ROOT_PROPERTY:
            return self.root, None, False, True

        parts = path.split('.')
        entity = self.root
        through_collection = False
        for index, name in enumerate(parts):
            attr, prop = self.processor._attribute(entity, name, path)
            last = index == len(parts) - 1
            if not isinstance(prop, RelationshipProperty):
                if not last:
                    raise ValidationError(
                        f"'{name}' in '{path}' is not an association",
                        invalid_fields={path: "not an association"},
                    )
                return attr, prop, through_collection, False

            through_collection = through_collection or prop.uselist
            entity = self._join('.'.join(parts[:index + 1]), attr, prop)

        return entity, prop, through_collection, True

    def _join(self, key: str, attr, prop: RelationshipProperty):
        alias = self.aliases.get(key)
        if alias is None:
            alias = aliased(prop.mapper.class_)
            self.joins.append(attr.of_type(alias))
            self.aliases[key] = alias
        return alias

    def apply(self, stmt):
        for target in self.joins:
            stmt = stmt.outerjoin(target)
        return stmt


class SearchProcessor:
    """Runs searches; one instance is shared per session factory."""

    _instances: "weakref.WeakKeyDictionary" = weakref.WeakKeyDictionary()

    def __init__(self, metadata_util: Optional[MetadataUtil] = None):
        self.metadata = metadata_util or MetadataUtil()

    @classmethod
    def get_instance_for_session_factory(cls, session_factory) -> "SearchProcessor":
        try:
            processor = cls._instances.get(session_factory)
        except TypeError:
            return cls()
        if processor is None:
            processor = cls()
            cls._instances[session_factory] = processor
        return processor

    # Public API

    def search(self, session: Session, search: ISearch, search_class: Optional[type] = None) -> List[Any]:
        """Return the results of a search, honouring paging and result mode."""
        cls = self._resolve_class(search, search_class)
        fields = list(search.fields) or [Field()]

        stmt = self._build_statement(cls, search, ordered=True)
        stmt = self._apply_paging(stmt, search)

        logger.debug("Running search", extra={
            "search_class": cls.__name__,
            "filter_count": len(search.filters),
        })
        rows = session.execute(stmt).all()
        return [self._shape_row(row, fields, search.result_mode) for row in rows]

    def count(self, session: Session, search: ISearch, search_class: Optional[type] = None) -> int:
        """Return the number of results the search would return without paging."""
        cls = self._resolve_class(search, search_class)
        inner = self._build_statement(cls, search, ordered=False).subquery()
        return session.execute(select(func.count()).select_from(inner)).scalar_one()

    def search_and_count(
        self, session: Session, search: ISearch, search_class: Optional[type] = None
    ) -> SearchResult:
        result = SearchResult(self.search(session, search, search_class))
        max_results = search.max_results or 0
        first_result = self._offset(search)
        if max_results <= 0 and first_result == 0:
            result.total_count = len(result.result)
        else:
            result.total_count = self.count(session, search, search_class)
        return result

    def search_unique(self, session: Session, search: ISearch, search_class: Optional[type] = None) -> Any:
        """
        Return the single result of a search.

        Returns:
            The result, or None when nothing matches

        Raises:
            NonUniqueResultError: If more than one result matches
        """
        results = self.search(session, search, search_class)
        if len(results) > 1:
            raise NonUniqueResultError(self._resolve_class(search, search_class), len(results))
        return results[0] if results else None

    def get_filter_from_example(self, example: Any, options: Optional[ExampleOptions] = None) -> Optional[Filter]:
        """
        Build a filter matching entities that look like the example.

        Identifier properties and collections are never used. Many-to-one
        associations match on the identifier of the associated entity, in
        place of their foreign key columns.
        """
        if example is None:
            return None
        options = options or ExampleOptions()
        mapper = self.metadata.get_mapper(example)
        id_names = set(self.metadata.get_id_property_names(mapper.class_))
        set_references = [
            prop for prop in mapper.relationships
            if not prop.uselist and getattr(example, prop.key) is not None
        ]
        # A set reference is matched through the association, not its foreign key
        foreign_keys = {
            mapper.get_property_by_column(column).key
            for prop in set_references for column in prop.local_columns
        }

        filters: List[Filter] = []
        for prop in mapper.column_attrs:
            name = prop.key
            if name in id_names or name in foreign_keys or name in options.exclude_props:
                continue
            value = getattr(example, name)
            if value is None:
                if not options.exclude_nulls:
                    filters.append(Filter.is_null(name))
                continue
            if options.exclude_zeros and _is_zero(value):
                continue
            if isinstance(value, str) and (options.match_mode is not MatchMode.EXACT or options.ignore_case):
                pattern = options.match_mode.to_pattern(value)
                filters.append(Filter.ilike(name, pattern) if options.ignore_case else Filter.like(name, pattern))
            else:
                filters.append(Filter.equal(name, value))

        for prop in mapper.relationships:
            name = prop.key
            if prop.uselist or name in options.exclude_props:
                continue
            related = getattr(example, name)
            if related is None:
                if not options.exclude_nulls:
                    filters.append(Filter.is_null(name))
                continue
            related_id = self.metadata.get_id(related)
            if related_id is None:
                continue
            related_names = self.metadata.get_id_property_names(prop.mapper.class_)
            related_values = related_id if isinstance(related_id, tuple) else (related_id,)
            for id_name, id_value in zip(related_names, related_values):
                filters.append(Filter.equal(f"{name}.{id_name}", id_value))

        return Filter.and_(*filters)

    # Statement building

    def _resolve_class(self, search: ISearch, search_class: Optional[type]) -> type:
        cls = search_class or search.search_class
        if cls is None:
            raise ValueError("Search class is null.")
        return self.metadata.get_unproxied_class(cls)

    def _build_statement(self, cls: type, search: ISearch, ordered: bool):
        ctx = _JoinContext(self, cls)
        fields = list(search.fields)

        group_by: list = []
        if fields:
            columns = []
            has_aggregate = any(f.operator.is_aggregate() for f in fields)
            for field in fields:
                expression, entity = self._field_expression(ctx, field)
                columns.append(expression)
                if has_aggregate and not field.operator.is_aggregate():
                    group_by.extend(self._group_columns(expression, entity))
            stmt = select(*columns).select_from(cls)
        else:
            stmt = select(cls)

        criteria = self._criteria(cls, search)

        order_by = []
        if ordered:
            for sort in search.sorts:
                expression, _prop, through_collection, entity = ctx.resolve(sort.property)
                if entity:
                    raise ValidationError(
                        f"Cannot sort on association '{sort.property}'",
                        invalid_fields={sort.property: "not a column"},
                    )
                if through_collection and not fields:
                    raise ValidationError(
                        f"Cannot sort entities on collection path '{sort.property}'",
                        invalid_fields={sort.property: "collection path"},
                    )
                if sort.ignore_case:
                    expression = func.lower(expression)
                order_by.append(expression.desc() if sort.desc else expression.asc())

        stmt = ctx.apply(stmt)
        if criteria is not None:
            stmt = stmt.where(criteria)
        if group_by:
            stmt = stmt.group_by(*group_by)
        if search.distinct:
            stmt = stmt.distinct()
        if order_by:
            stmt = stmt.order_by(*order_by)
        if ordered and not fields:
            for path in search.fetches:
                stmt = stmt.options(self._fetch_option(cls, path))
        return stmt

    def _criteria(self, cls: type, search: ISearch):
        parts = [c for c in (self._criterion(cls, f) for f in search.filters) if c is not None]
        if not parts:
            return None
        if search.disjunction:
            return or_(*parts)
        return and_(*parts)

    def _field_expression(self, ctx: _JoinContext, field: Field):
        expression, _prop, _through, entity = ctx.resolve(field.property)
        operator = field.operator
        if operator is FieldOperator.PROPERTY:
            return expression, entity

        if entity:
            if operator not in (FieldOperator.COUNT, FieldOperator.COUNT_DISTINCT):
                raise ValidationError(
                    f"Cannot apply {operator.value} to association '{field.property}'",
                    invalid_fields={field.property: "not a column"},
                )
            expression = self._id_column(expression)

        if operator is FieldOperator.COUNT:
            return func.count(expression), False
        if operator is FieldOperator.COUNT_DISTINCT:
            return func.count(distinct(expression)), False
        return _AGGREGATES[operator](expression), False

    def _id_column(self, entity):
        mapper = sa_inspect(entity).mapper
        name = self.metadata.get_id_property_names(mapper.class_)[0]
        return getattr(entity, name)

    def _group_columns(self, expression, entity: bool) -> list:
        if not entity:
            return [expression]
        mapper = sa_inspect(expression).mapper
        return [getattr(expression, prop.key) for prop in mapper.column_attrs]

    def _fetch_option(self, cls: type, path: str):
        option = None
        entity = cls
        for name in path.split('.'):
            attr, prop = self._attribute(entity, name, path)
            if not isinstance(prop, RelationshipProperty):
                raise ValidationError(
                    f"Cannot fetch '{path}': '{name}' is not an association",
                    invalid_fields={path: "not an association"},
                )
            option = selectinload(attr) if option is None else option.selectinload(attr)
            entity = prop.mapper.class_
        return option

    def _attribute(self, entity, name: str, path: str):
        """Look up a mapped attribute on a class or alias; 'id' aliases a single-column key."""
        mapper = sa_inspect(entity).mapper
        if name in mapper.attrs:
            return getattr(entity, name), mapper.attrs[name]
        if name == 'id' and len(mapper.primary_key) == 1:
            prop = mapper.get_property_by_column(mapper.primary_key[0])
            return getattr(entity, prop.key), prop
        if name in mapper.all_orm_descriptors.keys():
            return getattr(entity, name), None
        raise ValidationError(
            f"Could not find property '{name}' on {mapper.class_.__name__}",
            invalid_fields={path: "unknown property"},
        )

    # Filters

    def _criterion(self, cls: type, filter: Optional[Filter]):
        if filter is None or filter.is_ignored():
            return None

        operator = filter.operator
        if operator in (FilterOperator.AND, FilterOperator.OR):
            parts = [c for c in (self._criterion(cls, f) for f in filter.value) if c is not None]
            if not parts:
                return None
            return and_(*parts) if operator is FilterOperator.AND else or_(*parts)
        if operator is FilterOperator.NOT:
            inner = self._criterion(cls, filter.value)
            return not_(inner) if inner is not None else None

        if not filter.property:
            raise ValidationError(f"{operator.value} filter has no property")
        return self._path_criterion(cls, filter.property.split('.'), filter)

    def _path_criterion(self, entity, parts: List[str], filter: Filter):
        name, rest = parts[0], parts[1:]
        attr, prop = self._attribute(entity, name, filter.property)
        if not rest:
            if isinstance(prop, RelationshipProperty):
                return self._relationship_criterion(attr, prop, filter)
            return self._column_criterion(attr, prop, filter)

        if not isinstance(prop, RelationshipProperty):
            raise ValidationError(
                f"'{name}' in '{filter.property}' is not an association",
                invalid_fields={filter.property: "not an association"},
            )
        inner = self._path_criterion(prop.mapper.class_, rest, filter)
        return attr.any(inner) if prop.uselist else attr.has(inner)

    def _column_criterion(self, attr, prop, filter: Filter):
        operator = filter.operator
        value = filter.value

        if operator is FilterOperator.EQUAL:
            return attr == value
        if operator is FilterOperator.NOT_EQUAL:
            return attr != value
        if operator is FilterOperator.LESS_THAN:
            return attr < value
        if operator is FilterOperator.GREATER_THAN:
            return attr > value
        if operator is FilterOperator.LESS_OR_EQUAL:
            return attr <= value
        if operator is FilterOperator.GREATER_OR_EQUAL:
            return attr >= value
        if operator is FilterOperator.LIKE:
            return attr.like(value)
        if operator is FilterOperator.ILIKE:
            return attr.ilike(value)
        if operator is FilterOperator.IN:
            return attr.in_(filter.values_as_list())
        if operator is FilterOperator.NOT_IN:
            return attr.not_in(filter.values_as_list())
        if operator is FilterOperator.NULL:
            return attr.is_(None)
        if operator is FilterOperator.NOT_NULL:
            return attr.is_not(None)
        if operator is FilterOperator.EMPTY:
            if _is_string(prop):
                return or_(attr.is_(None), attr == '')
            return attr.is_(None)
        if operator is FilterOperator.NOT_EMPTY:
            if _is_string(prop):
                return and_(attr.is_not(None), attr != '')
            return attr.is_not(None)

        raise ValidationError(
            f"Operator {operator.value} requires a collection, '{filter.property}' is not one",
            invalid_fields={filter.property: "not a collection"},
        )

    def _relationship_criterion(self, attr, prop: RelationshipProperty, filter: Filter):
        operator = filter.operator

        if prop.uselist:
            if operator in (FilterOperator.NULL, FilterOperator.EMPTY):
                return ~attr.any()
            if operator in (FilterOperator.NOT_NULL, FilterOperator.NOT_EMPTY):
                return attr.any()
            if operator is FilterOperator.EQUAL:
                return attr.contains(filter.value)
            if operator is FilterOperator.NOT_EQUAL:
                return ~attr.contains(filter.value)
            if operator.is_collection():
                if filter.value is not None and not isinstance(filter.value, Filter):
                    raise ValidationError(
                        f"{operator.value} filter on '{filter.property}' needs a nested filter",
                        invalid_fields={filter.property: "missing nested filter"},
                    )
                inner = self._criterion(prop.mapper.class_, filter.value)
                if operator is FilterOperator.SOME:
                    return attr.any(inner) if inner is not None else attr.any()
                if operator is FilterOperator.ALL:
                    return ~attr.any(not_(inner)) if inner is not None else true()
                return ~attr.any(inner) if inner is not None else ~attr.any()
        else:
            if operator in (FilterOperator.NULL, FilterOperator.EMPTY):
                return attr == None  # noqa: E711
            if operator in (FilterOperator.NOT_NULL, FilterOperator.NOT_EMPTY):
                return attr != None  # noqa: E711
            if operator is FilterOperator.EQUAL:
                return attr == filter.value
            if operator is FilterOperator.NOT_EQUAL:
                return attr != filter.value

        raise ValidationError(
            f"Operator {operator.value} is not supported on association '{filter.property}'",
            invalid_fields={filter.property: "unsupported operator"},
        )

    # Paging and results

    def _offset(self, search: ISearch) -> int:
        first_result = search.first_result or 0
        if first_result > 0:
            return first_result
        max_results = search.max_results or 0
        page = search.page or 0
        if page > 0 and max_results > 0:
            return page * max_results
        return 0

    def _apply_paging(self, stmt, search: ISearch):
        max_results = search.max_results or 0
        if max_results > 0:
            stmt = stmt.limit(max_results)
        offset = self._offset(search)
        if offset > 0:
            stmt = stmt.offset(offset)
        return stmt

    def _shape_row(self, row, fields: List[Field], mode: ResultMode) -> Any:
        if mode is ResultMode.AUTO:
            if any(f.key is not None for f in fields):
                mode = ResultMode.MAP
            elif len(fields) == 1:
                mode = ResultMode.SINGLE
            else:
                mode = ResultMode.ARRAY

        if mode is ResultMode.SINGLE:
            return row[0]
        if mode is ResultMode.LIST:
            return list(row)
        if mode is ResultMode.MAP:
            return {f.result_key(): value for f, value in zip(fields, row)}
        return tuple(row)


def _is_string(prop) -> bool:
    return isinstance(prop, ColumnProperty) and isinstance(prop.columns[0].type, String)


def _is_zero(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal)) and value == 0
