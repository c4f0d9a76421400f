"""
Exceptions raised while translating criteria into queries.

All of them derive from SQLAlchemy's ``InvalidRequestError`` so callers that
already handle ORM misuse keep working. Validation always happens before any
SQL is sent to the database.
"""
from sqlalchemy.exc import InvalidRequestError


class CriteriaError(InvalidRequestError):
    """Base class for criteria translation errors."""


class UnknownFieldError(CriteriaError):
    """Raised when a criteria or ordering field is not mapped on the entity."""

    def __init__(self, class_name: str, field: str):
        self.class_name = class_name
        self.field = field
        super().__init__(f"Unknown field: {class_name}#{field}")


class UnknownAssociationError(CriteriaError):
    """Raised when a dotted path walks through something that is not a relationship."""

    def __init__(self, class_name: str, association: str):
        self.class_name = class_name
        self.association = association
        super().__init__(f"Unknown association: {class_name}#{association}")


class InvalidOperatorError(CriteriaError):
    """Raised for operators outside the supported set."""

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f"Invalid operator: {operator}")


class InvalidOperatorValueError(CriteriaError):
    """Raised when the value type cannot be used with the operator."""

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f'Invalid value type specified for operator "{operator}".')


class InvalidFindOptionsError(CriteriaError):
    """Raised for malformed ordering or pagination arguments."""


__all__ = [
    "CriteriaError",
    "UnknownFieldError",
    "UnknownAssociationError",
    "InvalidOperatorError",
    "InvalidOperatorValueError",
    "InvalidFindOptionsError",
]
