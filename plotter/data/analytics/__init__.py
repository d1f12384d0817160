"""Analytics module - usage events recorded alongside primary operations."""
from plotter.data.analytics.models import AnalyticsEvent
from plotter.data.analytics.service import log_analytics_event

__all__ = ["AnalyticsEvent", "log_analytics_event"]
