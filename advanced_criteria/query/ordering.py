"""
Ordering and pagination.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Query, RelationshipDirection

from ..errors import InvalidFindOptionsError
from ..schemas import FindOptions
from .walker import CriteriaWalker

logger = logging.getLogger(__name__)


def apply_order_by(query: Query, walker: CriteriaWalker, options: FindOptions) -> Query:
    """Append ORDER BY clauses in the order the fields were given.

    Relationship fields order by their many-to-one foreign key columns, in
    constraint order; any other relationship cannot be ordered by.
    """
    for path, direction in options.order_by.items():
        query, field, alias, mapper = walker.resolve(query, path)
        if field in mapper.relationships:
            relationship = mapper.relationships[field]
            if relationship.direction is not RelationshipDirection.MANYTOONE:
                raise InvalidFindOptionsError(
                    f"Cannot order by {mapper.class_.__name__}#{field}: "
                    "only many-to-one relationships can be ordered"
                )
            columns = [
                getattr(alias, mapper.get_property_by_column(local).key)
                for local, _remote in relationship.local_remote_pairs
            ]
        else:
            columns = [getattr(alias, field)]

        for column in columns:
            query = query.order_by(column.desc() if direction == 'DESC' else column.asc())
    return query


def apply_pagination(query: Query, options: FindOptions, max_results: Optional[int] = None) -> Query:
    limit = options.limit
    if max_results is not None and (limit is None or limit > max_results):
        logger.warning("Clamping result limit %s to configured maximum %s", limit, max_results)
        limit = max_results
    return query.limit(limit).offset(options.offset)
