"""Pagination contracts and controller."""

from .base import PaginationResult, PaginationState, SeenIdSet
from .pagination import (
    STOP_BUDGET,
    STOP_EXHAUSTED,
    STOP_SATISFIED,
    PaginationController,
)

__all__ = [
    "PaginationController",
    "PaginationResult",
    "PaginationState",
    "STOP_BUDGET",
    "STOP_EXHAUSTED",
    "STOP_SATISFIED",
    "SeenIdSet",
]
