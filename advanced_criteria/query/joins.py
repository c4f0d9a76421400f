"""
Alias generation and join deduplication for a single query.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Query, RelationshipProperty, aliased

logger = logging.getLogger(__name__)


class JoinRegistry:
    """Tracks which association paths are already joined.

    Aliases are ``<prefix><n>`` with ``n`` counting from zero, so the first
    alias handed out (the query root) is always ``<prefix>0``. Every path is
    inner-joined at most once per query.
    """

    def __init__(self, alias_prefix: str = "_t"):
        self.alias_prefix = alias_prefix
        self._alias_index = 0
        self._aliases: Dict[str, Any] = {}

    def generate_alias(self) -> str:
        name = f"{self.alias_prefix}{self._alias_index}"
        self._alias_index += 1
        return name

    def get(self, path: str) -> Optional[Any]:
        return self._aliases.get(path)

    def __contains__(self, path: str) -> bool:
        return path in self._aliases

    def __len__(self) -> int:
        return len(self._aliases)

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(self._aliases)

    def join(
        self,
        query: Query,
        parent: Any,
        relationship: RelationshipProperty,
        path: str,
    ) -> Tuple[Query, Any]:
        """Inner-join ``relationship`` from ``parent`` unless ``path`` is already joined.

        Returns the (possibly extended) query and the alias of the joined entity.
        """
        alias = self._aliases.get(path)
        if alias is None:
            alias_name = self.generate_alias()
            alias = aliased(relationship.mapper.class_, name=alias_name)
            query = query.join(getattr(parent, relationship.key).of_type(alias))
            self._aliases[path] = alias
            logger.debug("Joined association path '%s' as %s", path, alias_name)
        return query, alias
