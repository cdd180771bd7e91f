from .client import AnalyticsApiClient

__all__ = ["AnalyticsApiClient"]
