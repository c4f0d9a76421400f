"""
Criteria-to-query translation building blocks used by the repository.
"""
from .conditions import ConditionBuilder
from .joins import JoinRegistry
from .operators import OPERATORS, TYPE_OPERATORS, determine_type
from .ordering import apply_order_by, apply_pagination
from .walker import CriteriaWalker

__all__ = [
    "ConditionBuilder",
    "CriteriaWalker",
    "JoinRegistry",
    "OPERATORS",
    "TYPE_OPERATORS",
    "apply_order_by",
    "apply_pagination",
    "determine_type",
]
