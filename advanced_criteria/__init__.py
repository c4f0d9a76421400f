"""
Advanced criteria for SQLAlchemy entity repositories.
"""
from .errors import (
    CriteriaError,
    InvalidFindOptionsError,
    InvalidOperatorError,
    InvalidOperatorValueError,
    UnknownAssociationError,
    UnknownFieldError,
)
from .repository import EntityRepository

__all__ = [
    "EntityRepository",
    "CriteriaError",
    "InvalidFindOptionsError",
    "InvalidOperatorError",
    "InvalidOperatorValueError",
    "UnknownAssociationError",
    "UnknownFieldError",
]
