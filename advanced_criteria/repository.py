"""
Entity repository with advanced criteria.

``find_by`` and friends accept a mapping of field paths to criteria::

    repo = EntityRepository(db, models.User)
    repo.find_by({"username": "alice"})
    repo.find_by({"age": {">=": 18, "<": 65}, "email": None})
    repo.find_by({"posts.title": {"like": "%sqlalchemy%"}}, order_by={"username": "asc"})
    repo.find_count_by({"groups.name": ["admins", "staff"]})

A plain value means ``=``, a list/tuple/set means ``IN`` and ``None`` means
``IS NULL``. Dotted paths walk relationships with inner joins; a relationship
is joined once per query however often it appears.
"""
from __future__ import annotations

import logging
from typing import Any, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError
from sqlalchemy import distinct, func, inspect
from sqlalchemy.orm import Query, Session, aliased

from .config import get_settings
from .errors import InvalidFindOptionsError
from .query import ConditionBuilder, CriteriaWalker, JoinRegistry, apply_order_by, apply_pagination
from .schemas import FindOptions

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class EntityRepository(Generic[ModelT]):
    """Repository for one mapped class.

    Either pass the class explicitly or set ``entity`` on a subclass::

        class UserRepository(EntityRepository[User]):
            entity = User
    """

    entity: Type[ModelT]

    def __init__(self, db: Session, entity: Optional[Type[ModelT]] = None):
        self.db = db
        if entity is not None:
            self.entity = entity
        if getattr(self, "entity", None) is None:
            raise TypeError(f"{type(self).__name__} requires an entity class")
        self._mapper = inspect(self.entity)
        self._reset_find()

    @property
    def entity_name(self) -> str:
        return self._mapper.class_.__name__

    # Lookups

    def find(self, identity: Any) -> Optional[ModelT]:
        """Primary-key lookup."""
        return self.db.get(self.entity, identity)

    def find_all(self, order_by: Optional[Mapping[str, str]] = None) -> List[ModelT]:
        return self.find_by({}, order_by)

    def find_by(
        self,
        criteria: Mapping[str, Any],
        order_by: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[ModelT]:
        """Find entities matching ``criteria``."""
        return self.build_query(criteria, order_by, limit, offset).all()

    def find_one_by(
        self,
        criteria: Mapping[str, Any],
        order_by: Optional[Mapping[str, str]] = None,
    ) -> Optional[ModelT]:
        """First entity matching ``criteria`` (per ``order_by``), or None."""
        entities = self.find_by(criteria, order_by, 1, 0)
        return entities[0] if entities else None

    def find_count_all(self) -> int:
        return self.find_count_by({})

    def find_count_by(self, criteria: Mapping[str, Any]) -> int:
        """Count distinct entities matching ``criteria``."""
        query = self._start_query()
        query = self._walker.walk(query, criteria or {})
        primary_key = [
            getattr(self._root, self._mapper.get_property_by_column(column).key)
            for column in self._mapper.primary_key
        ]
        self._log_query(query)
        if len(primary_key) == 1:
            return int(query.with_entities(func.count(distinct(primary_key[0]))).scalar() or 0)
        return int(query.with_entities(*primary_key).distinct().count())

    def build_query(
        self,
        criteria: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Query:
        """Translate criteria, ordering and pagination into an unexecuted query."""
        options = self._find_options(order_by, limit, offset)
        query = self._start_query()
        query = self._walker.walk(query, criteria or {})
        query = apply_order_by(query, self._walker, options)
        query = apply_pagination(query, options, self._settings.max_results)
        self._log_query(query)
        return query

    # Internal state

    def _reset_find(self) -> None:
        """Fresh aliases, joins and parameter names for the next query."""
        self._settings = get_settings()
        self._joins = JoinRegistry(self._settings.alias_prefix)
        entities = {m.class_.__name__: m.class_ for m in self._mapper.registry.mappers}
        conditions = ConditionBuilder(entities, self._joins, self._settings.parameter_prefix)
        self._root = aliased(self.entity, name=self._joins.generate_alias())
        self._walker = CriteriaWalker(self._root, self._mapper, self._joins, conditions)

    def _start_query(self) -> Query:
        self._reset_find()
        return self.db.query(self._root)

    @staticmethod
    def _find_options(order_by, limit, offset) -> FindOptions:
        try:
            return FindOptions(order_by=order_by, limit=limit, offset=offset)
        except ValidationError as exc:
            raise InvalidFindOptionsError(str(exc)) from exc

    def _log_query(self, query: Query) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Built %s query with %d join(s): %s", self.entity_name, len(self._joins), query)
