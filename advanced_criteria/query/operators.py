"""
Operator whitelist and operator/value type compatibility.

Criteria values are classified into coarse value types (``integer``,
``string/entity``, ``array/range``, ...). Each value type accepts a fixed set
of operators; everything else is rejected before a query is built.
"""
from __future__ import annotations

import datetime
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Mapper

from ..errors import InvalidOperatorError, InvalidOperatorValueError


OPERATORS: FrozenSet[str] = frozenset({
    '=', '!=', '<>', '<', '>', '<=', '>=',
    'IS', 'IS NOT',
    'LIKE', 'NOT LIKE',
    'IN', 'NOT IN',
    'BETWEEN', 'NOT BETWEEN',
    'INSTANCEOF',
})

_COMPARISON = frozenset({'=', '!=', '<>', '<', '>', '<=', '>='})
_EQUALITY = frozenset({'=', '!=', '<>'})
_LIKE = frozenset({'LIKE', 'NOT LIKE'})
_MEMBERSHIP = frozenset({'IN', 'NOT IN'})
_RANGE = frozenset({'BETWEEN', 'NOT BETWEEN'})
_IDENTITY = frozenset({'IS', 'IS NOT'})

TYPE_OPERATORS: Dict[str, FrozenSet[str]] = {
    'boolean': _EQUALITY | _IDENTITY,
    'integer': _COMPARISON,
    'double': _COMPARISON,
    'string': _COMPARISON | _LIKE,
    'string/entity': _COMPARISON | _LIKE | {'INSTANCEOF'},
    'class/entity': frozenset({'INSTANCEOF'}),
    'array': _MEMBERSHIP,
    'array/range': _MEMBERSHIP | _RANGE,
    'object/datetime': _COMPARISON | _LIKE,
    'object/entity': _EQUALITY,
    'object/string': _COMPARISON | _LIKE,
    'null': _IDENTITY,
}

# Value types allowed as the bounds of a BETWEEN range.
RANGE_TYPES = frozenset({
    'boolean',
    'integer',
    'double',
    'string',
    'string/entity',
    'object/datetime',
    'object/string',
})

ARRAY_TYPES = (list, tuple, set, frozenset)


def mapper_for_class(cls) -> Optional[Mapper]:
    """Return the mapper of a mapped class, or None for anything else."""
    if not isinstance(cls, type):
        return None
    insp = inspect(cls, raiseerr=False)
    return insp if isinstance(insp, Mapper) else None


def is_entity(value: Any) -> bool:
    """True for instances of mapped classes."""
    return mapper_for_class(type(value)) is not None


def has_advanced_criteria(field_criteria: Any) -> bool:
    """True when the criteria is an ``{operator: value}`` mapping."""
    return isinstance(field_criteria, Mapping) and len(field_criteria) > 0


def normalize_criteria(field_criteria: Any) -> Dict[str, Any]:
    """Expand shorthand criteria and upper-case the operator keys.

    ``None`` becomes ``IS``, sequences become ``IN`` and any other scalar
    becomes ``=``.
    """
    if not has_advanced_criteria(field_criteria):
        if field_criteria is None:
            operator = 'IS'
        elif isinstance(field_criteria, ARRAY_TYPES):
            operator = 'IN'
        else:
            operator = '='
        field_criteria = {operator: field_criteria}
    return {str(operator).strip().upper(): value for operator, value in field_criteria.items()}


def determine_type(value: Any, entities: Mapping[str, type]) -> str:
    """Classify a criteria value.

    ``entities`` maps class names to mapped classes; a string equal to one of
    the names is a ``string/entity`` and may be used with INSTANCEOF.
    """
    if value is None:
        return 'null'
    # bool is a subclass of int
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, int):
        return 'integer'
    if isinstance(value, (float, Decimal)):
        return 'double'
    if isinstance(value, str):
        return 'string/entity' if value in entities else 'string'
    if isinstance(value, type):
        return 'class/entity' if mapper_for_class(value) is not None else 'unknown'
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return 'object/datetime'
    if is_entity(value):
        return 'object/entity'
    if isinstance(value, ARRAY_TYPES):
        if isinstance(value, (list, tuple)) and is_range(value, entities):
            return 'array/range'
        return 'array'
    if type(value).__str__ is not object.__str__:
        return 'object/string'
    return 'unknown'


def is_range(values, entities: Mapping[str, type]) -> bool:
    if len(values) != 2:
        return False
    start_type = determine_type(values[0], entities)
    end_type = determine_type(values[1], entities)
    return start_type in RANGE_TYPES and end_type in RANGE_TYPES


def validate_operator(operator: str) -> None:
    if operator not in OPERATORS:
        raise InvalidOperatorError(operator)


def validate_operator_value(operator: str, value_type: str) -> None:
    allowed = TYPE_OPERATORS.get(value_type)
    if allowed is None or operator not in allowed:
        raise InvalidOperatorValueError(operator)
