"""
Condition building: one field plus its criteria becomes one or more WHERE
predicates.

Values always travel as bind parameters. Operators are validated against the
whitelist and against the value type first, so nothing reaches the query
builder that the whitelist did not approve.
"""
from __future__ import annotations

import operator as op
from typing import Any, Mapping, Optional

from sqlalchemy import String, and_, bindparam, cast, false, not_, or_, true
from sqlalchemy.orm import Mapper, Query, RelationshipDirection, RelationshipProperty
from sqlalchemy.orm.exc import UnmappedColumnError

from ..errors import InvalidOperatorValueError
from .joins import JoinRegistry
from .operators import (
    determine_type,
    is_entity,
    mapper_for_class,
    normalize_criteria,
    validate_operator,
    validate_operator_value,
)


_BINARY_OPERATORS = {
    '=': op.eq,
    '!=': op.ne,
    '<>': op.ne,
    '<': op.lt,
    '>': op.gt,
    '<=': op.le,
    '>=': op.ge,
}


class ConditionBuilder:
    """Turns ``field -> criteria`` into parameterized predicates on a query."""

    def __init__(
        self,
        entities: Mapping[str, type],
        joins: JoinRegistry,
        parameter_prefix: str = "parameter_",
    ):
        self.entities = entities
        self.joins = joins
        self.parameter_prefix = parameter_prefix
        self._parameter_index = 0

    def apply(
        self,
        query: Query,
        alias: Any,
        mapper: Mapper,
        field: str,
        path: str,
        field_criteria: Any,
    ) -> Query:
        """AND every ``operator: value`` pair of ``field_criteria`` onto ``query``.

        ``path`` is the full dotted field path; it keys the join that
        INSTANCEOF needs on relationships.
        """
        for operator, value in normalize_criteria(field_criteria).items():
            validate_operator(operator)
            value_type = determine_type(value, self.entities)
            validate_operator_value(operator, value_type)
            if field in mapper.relationships:
                query = self._add_relationship_where(
                    query, alias, mapper, mapper.relationships[field], path, operator, value
                )
            else:
                query = query.filter(self._column_predicate(alias, mapper, field, operator, value))
        return query

    def generate_parameter(self) -> str:
        name = f"{self.parameter_prefix}{self._parameter_index}"
        self._parameter_index += 1
        return name

    def _bind(self, value, type_, expanding: bool = False):
        return bindparam(self.generate_parameter(), value, type_=type_, expanding=expanding)

    def _column_predicate(self, alias, mapper: Mapper, field: str, operator: str, value):
        if operator == 'INSTANCEOF':
            raise InvalidOperatorValueError(operator)

        column = getattr(alias, field)
        column_type = mapper.column_attrs[field].columns[0].type

        if operator in ('IS', 'IS NOT'):
            constant = None if value is None else (true() if value else false())
            return column.is_(constant) if operator == 'IS' else column.is_not(constant)

        if operator in ('IN', 'NOT IN'):
            if any(is_entity(item) for item in value):
                raise InvalidOperatorValueError(operator)
            parameter = self._bind(list(value), column_type, expanding=True)
            return column.in_(parameter) if operator == 'IN' else column.not_in(parameter)

        if operator in ('BETWEEN', 'NOT BETWEEN'):
            predicate = column.between(
                self._bind(value[0], column_type),
                self._bind(value[1], column_type),
            )
            return predicate if operator == 'BETWEEN' else not_(predicate)

        if is_entity(value):
            raise InvalidOperatorValueError(operator)

        if operator in ('LIKE', 'NOT LIKE'):
            # Patterns are text; match non-text columns on their string form.
            if not isinstance(column_type, String):
                column = cast(column, String)
            parameter = self._bind(str(value), String())
            return column.like(parameter) if operator == 'LIKE' else column.not_like(parameter)

        return _BINARY_OPERATORS[operator](column, self._bind(value, column_type))

    def _add_relationship_where(
        self,
        query: Query,
        alias,
        mapper: Mapper,
        relationship: RelationshipProperty,
        path: str,
        operator: str,
        value,
    ) -> Query:
        if operator == 'INSTANCEOF':
            return self._add_instance_of(query, alias, relationship, path, value)

        attribute = getattr(alias, relationship.key)
        target = relationship.mapper.class_

        if value is None:
            if relationship.uselist:
                predicate = ~attribute.any() if operator == 'IS' else attribute.any()
            else:
                predicate = attribute == None if operator == 'IS' else attribute != None  # noqa: E711
            return query.filter(predicate)

        if is_entity(value):
            if not isinstance(value, target):
                raise InvalidOperatorValueError(operator)
            predicate = self._entity_equals(relationship, attribute, value)
            return query.filter(predicate if operator == '=' else not_(predicate))

        if operator in ('IN', 'NOT IN') and not value:
            return query.filter(false() if operator == 'IN' else true())

        if operator in ('IN', 'NOT IN') and any(is_entity(item) for item in value):
            if not all(isinstance(item, target) for item in value):
                raise InvalidOperatorValueError(operator)
            predicate = or_(*[self._entity_equals(relationship, attribute, item) for item in value])
            return query.filter(predicate if operator == 'IN' else not_(predicate))

        # Plain identity values compare against the foreign key column.
        foreign_key = self._foreign_key_field(mapper, relationship)
        if foreign_key is None or operator in ('IS', 'IS NOT'):
            raise InvalidOperatorValueError(operator)
        return query.filter(self._column_predicate(alias, mapper, foreign_key, operator, value))

    def _entity_equals(self, relationship: RelationshipProperty, attribute, entity):
        if not relationship.uselist:
            return attribute == entity
        # Correlated EXISTS keeps negation correct for many-to-many collections.
        target_mapper = relationship.mapper
        identity = target_mapper.primary_key_from_instance(entity)
        return attribute.any(and_(*[
            column == self._bind(value, column.type)
            for column, value in zip(target_mapper.primary_key, identity)
        ]))

    @staticmethod
    def _foreign_key_field(mapper: Mapper, relationship: RelationshipProperty) -> Optional[str]:
        """Attribute name of the single local foreign key of a many-to-one."""
        if relationship.direction is not RelationshipDirection.MANYTOONE or len(relationship.local_columns) != 1:
            return None
        (column,) = relationship.local_columns
        try:
            return mapper.get_property_by_column(column).key
        except UnmappedColumnError:
            return None

    def _add_instance_of(self, query: Query, alias, relationship: RelationshipProperty, path: str, value) -> Query:
        target_mapper = relationship.mapper
        cls = self.entities[value] if isinstance(value, str) else value
        cls_mapper = mapper_for_class(cls)
        discriminator = target_mapper.polymorphic_on
        if cls_mapper is None or discriminator is None or not cls_mapper.isa(target_mapper):
            raise InvalidOperatorValueError('INSTANCEOF')
        try:
            discriminator_key = target_mapper.get_property_by_column(discriminator).key
        except UnmappedColumnError:
            raise InvalidOperatorValueError('INSTANCEOF') from None

        identities = [
            m.polymorphic_identity
            for m in cls_mapper.self_and_descendants
            if m.polymorphic_identity is not None
        ]
        query, joined = self.joins.join(query, alias, relationship, path)
        column = getattr(joined, discriminator_key)
        column_type = target_mapper.column_attrs[discriminator_key].columns[0].type
        return query.filter(column.in_(self._bind(identities, column_type, expanding=True)))
