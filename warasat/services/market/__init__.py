from .history import HISTORICAL_DATA, INSIGHT, HistoricalDataPoint, growth_multiple

__all__ = ["HISTORICAL_DATA", "INSIGHT", "HistoricalDataPoint", "growth_multiple"]
