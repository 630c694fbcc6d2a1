"""Starlette / FastAPI integration.

Gives every request its own :class:`AnalyticsContext`, backed by the
user's session so queued facts survive redirects.

Usage::

    from fastapi import Depends, FastAPI
    from starlette.middleware.sessions import SessionMiddleware
    from ga_analytics import AnalyticsContext, AnalyticsMiddleware, AnalyticsSettings
    from ga_analytics.middleware import get_analytics

    app = FastAPI()
    app.add_middleware(AnalyticsMiddleware, settings=AnalyticsSettings.from_env())
    app.add_middleware(SessionMiddleware, secret_key="...")  # must be outermost

    @app.post("/cart")
    async def add_to_cart(analytics: AnalyticsContext = Depends(get_analytics)):
        analytics.enqueue_event(Event("cart", "add"))
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ga_analytics.config import AnalyticsSettings
from ga_analytics.context import AnalyticsContext
from ga_analytics.session import InMemorySession, RequestSession

logger = logging.getLogger(__name__)


class StarletteRequestInfo:
    """Exposes a Starlette request's path and query parameters."""

    def __init__(self, request: Request) -> None:
        self._request = request

    @property
    def path(self) -> str:
        return self._request.url.path

    @property
    def query_params(self) -> Dict[str, str]:
        # Last value wins for repeated keys.
        return dict(self._request.query_params)


class AnalyticsMiddleware(BaseHTTPMiddleware):
    """Attaches an :class:`AnalyticsContext` to ``request.state.analytics``.

    Needs Starlette's ``SessionMiddleware`` as an outer layer to persist
    queued facts between requests.  Without it the context still works
    but only for the lifetime of the request.
    """

    def __init__(self, app: Any, settings: AnalyticsSettings | None = None) -> None:
        super().__init__(app)
        self.settings = settings or AnalyticsSettings()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if "session" in request.scope:
            session = RequestSession(request.session)
        else:
            logger.warning(
                "SessionMiddleware not installed; analytics for %s will not persist",
                request.url.path,
            )
            session = InMemorySession()

        request.state.analytics = AnalyticsContext.from_settings(
            self.settings,
            session=session,
            request=StarletteRequestInfo(request),
        )

        response = await call_next(request)

        if isinstance(session, RequestSession):
            session.flush()
        return response


def get_analytics(request: Request) -> AnalyticsContext:
    """Return the request's :class:`AnalyticsContext` (usable with ``Depends``)."""
    try:
        return request.state.analytics
    except AttributeError:
        raise RuntimeError("AnalyticsMiddleware is not installed") from None
