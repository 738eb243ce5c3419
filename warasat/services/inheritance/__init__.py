"""Inheritance (faraid) share allocation."""

from .allocator import (
    FIXED_SHARE_RULES,
    RESIDUE_RULES,
    Allocation,
    FixedShareRule,
    allocate,
    allocate_with_summary,
)

__all__ = [
    "FIXED_SHARE_RULES",
    "RESIDUE_RULES",
    "Allocation",
    "FixedShareRule",
    "allocate",
    "allocate_with_summary",
]
