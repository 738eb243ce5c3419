"""External valuation and advice model client."""

from .valuation import ValuationEstimate, ValuationService

__all__ = ["ValuationEstimate", "ValuationService"]
