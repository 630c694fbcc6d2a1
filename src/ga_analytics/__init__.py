"""GA Analytics: Google Analytics tracking facts for web applications.

Collects page views, events, e-commerce transactions and items, custom
variables and tracker options while a request is handled, and hands them
to whatever renders the tracking snippet.

Integration points:
    1. Starlette/FastAPI middleware: one context per request, session-backed
    2. Direct API: build an AnalyticsContext around any session store
"""

from ga_analytics.config import (
    AnalyticsSettings,
    DashboardConfig,
    PageRule,
    PageRules,
    TrackerConfig,
)
from ga_analytics.context import AnalyticsContext
from ga_analytics.errors import UnknownTrackerError
from ga_analytics.events import (
    CustomVariable,
    CustomVariableScope,
    Event,
    Item,
    Option,
    Transaction,
)
from ga_analytics.session import InMemorySession, RequestSession


def __getattr__(name: str):
    if name == "AnalyticsMiddleware":
        from ga_analytics.middleware import AnalyticsMiddleware

        return AnalyticsMiddleware
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AnalyticsContext",
    "AnalyticsSettings",
    "TrackerConfig",
    "PageRule",
    "PageRules",
    "DashboardConfig",
    "UnknownTrackerError",
    "Event",
    "Item",
    "Transaction",
    "CustomVariable",
    "CustomVariableScope",
    "Option",
    "InMemorySession",
    "RequestSession",
    "AnalyticsMiddleware",
]

__version__ = "0.1.0"
