"""Cash settlement between inheritors."""

from .matcher import DEFAULT_THRESHOLD, build_financials, settle

__all__ = [
    "DEFAULT_THRESHOLD",
    "build_financials",
    "settle",
]
