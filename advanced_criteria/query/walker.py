"""
Criteria walking: resolve dotted field paths through relationships and hand
each leaf to the condition builder.
"""
from __future__ import annotations

from typing import Any, Mapping, Tuple

from sqlalchemy.orm import Mapper, Query

from ..errors import UnknownAssociationError, UnknownFieldError
from .conditions import ConditionBuilder
from .joins import JoinRegistry


class CriteriaWalker:
    def __init__(
        self,
        root: Any,
        root_mapper: Mapper,
        joins: JoinRegistry,
        conditions: ConditionBuilder,
    ):
        self.root = root
        self.root_mapper = root_mapper
        self.joins = joins
        self.conditions = conditions

    def resolve(self, query: Query, path: str) -> Tuple[Query, str, Any, Mapper]:
        """Resolve ``path`` to ``(query, field, alias, mapper)``.

        Every segment before the last must be a relationship; each one is
        inner-joined once (see :class:`JoinRegistry`). The last segment must be
        a mapped column or relationship of the mapper reached.
        """
        alias = self.root
        mapper = self.root_mapper
        field = path

        if '.' in path:
            *associations, field = path.split('.')
            walked = []
            for association in associations:
                if association not in mapper.relationships:
                    raise UnknownAssociationError(mapper.class_.__name__, association)
                relationship = mapper.relationships[association]
                walked.append(association)
                query, alias = self.joins.join(query, alias, relationship, '.'.join(walked))
                mapper = relationship.mapper

        if field not in mapper.column_attrs and field not in mapper.relationships:
            raise UnknownFieldError(mapper.class_.__name__, field)
        return query, field, alias, mapper

    def walk(self, query: Query, criteria: Mapping[str, Any]) -> Query:
        for path, field_criteria in criteria.items():
            query, field, alias, mapper = self.resolve(query, path)
            query = self.conditions.apply(query, alias, mapper, field, path, field_criteria)
        return query
