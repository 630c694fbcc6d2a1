"""AnalyticsContext: the per-request collection point for tracking facts.

Application code records facts while handling a request; the rendering
layer reads them back (draining the one-shot ones) and emits the
tracking snippet.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlencode

from ga_analytics.config import (
    AnalyticsSettings,
    TrackerConfig,
    load_dashboard,
    load_page_rules,
    load_trackers,
)
from ga_analytics.errors import UnknownTrackerError
from ga_analytics.events import CustomVariable, Event, Item, Option, Transaction
from ga_analytics.session import (
    CUSTOM_PAGE_VIEW_KEY,
    EVENT_QUEUE_KEY,
    ITEMS_KEY,
    PAGE_VIEW_QUEUE_KEY,
    TRANSACTION_KEY,
    InMemorySession,
    RequestInfo,
    SessionQueue,
    SessionStore,
    SessionValue,
)

logger = logging.getLogger(__name__)


def _query_values(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop None values and write booleans as 1/0."""
    return {
        key: int(value) if isinstance(value, bool) else value
        for key, value in params.items()
        if value is not None
    }


class AnalyticsContext:
    """Accumulates Google Analytics facts for one request.

    Usage::

        analytics = AnalyticsContext(
            session=RequestSession(request.session),
            request=StarletteRequestInfo(request),
            trackers={"default": {"accountId": "UA-1234-1"}},
        )
        analytics.enqueue_event(Event("cart", "add", label="sku-42"))
        analytics.set_transaction(Transaction(order_number="1001", total=59.9))

    Session-backed facts (events, page views, items, transaction, custom
    page view) are drained by their ``get_*`` accessor; custom variables
    and options live on the instance and are never drained.
    """

    def __init__(
        self,
        session: Optional[SessionStore] = None,
        request: Optional[RequestInfo] = None,
        trackers: Optional[Mapping[str, Any]] = None,
        whitelist: Optional[Iterable[str]] = None,
        dashboard: Any = None,
        page_rules: Any = None,
    ):
        self.session = session if session is not None else InMemorySession()
        self._request = request
        self.trackers: Dict[str, TrackerConfig] = load_trackers(trackers)
        self.whitelist: List[str] = list(whitelist or [])
        self.page_rules = load_page_rules(page_rules)

        dash = load_dashboard(dashboard)
        self.api_key = dash.api_key
        self.client_id = dash.client_id
        self.table_id = dash.table_id

        self.page_views_with_base_url = True
        self.options: List[Option] = []
        self.forced_page_params: Dict[str, Any] = {}
        self._forced_page_name: Optional[str] = None
        self._custom_variables: List[CustomVariable] = []

        self._events = SessionQueue(self.session, EVENT_QUEUE_KEY)
        self._page_views = SessionQueue(self.session, PAGE_VIEW_QUEUE_KEY)
        self._items = SessionQueue(self.session, ITEMS_KEY)
        self._transaction = SessionValue(self.session, TRANSACTION_KEY)
        self._custom_page_view = SessionValue(self.session, CUSTOM_PAGE_VIEW_KEY)

    @classmethod
    def from_settings(
        cls,
        settings: AnalyticsSettings,
        session: Optional[SessionStore] = None,
        request: Optional[RequestInfo] = None,
    ) -> "AnalyticsContext":
        # Trackers are copied so per-request overrides never leak into settings.
        trackers = {
            key: replace(tracker)
            for key, tracker in settings.trackers.items()
        }
        return cls(
            session=session,
            request=request,
            trackers=trackers,
            whitelist=settings.whitelist,
            dashboard=settings.dashboard,
            page_rules=settings.page_rules,
        )

    # ------------------------------------------------------------------ #
    # Base URL
    # ------------------------------------------------------------------ #

    def exclude_base_url(self) -> "AnalyticsContext":
        self.page_views_with_base_url = False
        return self

    def include_base_url(self) -> "AnalyticsContext":
        self.page_views_with_base_url = True
        return self

    # ------------------------------------------------------------------ #
    # Tracker properties
    # ------------------------------------------------------------------ #

    def _tracker(self, tracker_id: str) -> TrackerConfig:
        try:
            return self.trackers[tracker_id]
        except KeyError:
            raise UnknownTrackerError(tracker_id) from None

    def set_tracker_property(
        self, tracker_id: str, prop: str, value: Any
    ) -> "AnalyticsContext":
        tracker = self._tracker(tracker_id)
        setattr(tracker, TrackerConfig.field_for(prop), value)
        return self

    def get_tracker_property(self, tracker_id: str, prop: str) -> Any:
        """Return a tracker property, or None when the tracker or value is missing."""
        field_name = TrackerConfig.field_for(prop)
        try:
            tracker = self._tracker(tracker_id)
        except UnknownTrackerError:
            logger.debug("No tracker %r; %s falls back to default", tracker_id, prop)
            return None
        return getattr(tracker, field_name)

    def _get_flag(self, tracker_id: str, prop: str, default: bool) -> bool:
        value = self.get_tracker_property(tracker_id, prop)
        return default if value is None else value

    def set_allow_anchor(self, tracker_id: str, allow_anchor: bool) -> None:
        self.set_tracker_property(tracker_id, "allow_anchor", allow_anchor)

    def get_allow_anchor(self, tracker_id: str) -> bool:
        return self._get_flag(tracker_id, "allow_anchor", False)

    def set_allow_hash(self, tracker_id: str, allow_hash: bool) -> None:
        self.set_tracker_property(tracker_id, "allow_hash", allow_hash)

    def get_allow_hash(self, tracker_id: str) -> bool:
        return self._get_flag(tracker_id, "allow_hash", False)

    def set_allow_linker(self, tracker_id: str, allow_linker: bool) -> None:
        self.set_tracker_property(tracker_id, "allow_linker", allow_linker)

    def get_allow_linker(self, tracker_id: str) -> bool:
        return self._get_flag(tracker_id, "allow_linker", True)

    def set_include_name_prefix(self, tracker_id: str, include: bool) -> None:
        self.set_tracker_property(tracker_id, "include_name_prefix", include)

    def get_include_name_prefix(self, tracker_id: str) -> bool:
        return self._get_flag(tracker_id, "include_name_prefix", True)

    def set_tracker_name(self, tracker_id: str, name: str) -> None:
        self.set_tracker_property(tracker_id, "name", name)

    def get_tracker_name(self, tracker_id: str) -> Optional[str]:
        return self.get_tracker_property(tracker_id, "name")

    def set_site_speed_sample_rate(self, tracker_id: str, rate: int) -> None:
        self.set_tracker_property(tracker_id, "site_speed_sample_rate", rate)

    def get_site_speed_sample_rate(self, tracker_id: str) -> Optional[int]:
        value = self.get_tracker_property(tracker_id, "site_speed_sample_rate")
        return None if value is None else int(value)

    def get_trackers(self, keys: Optional[Iterable[str]] = None) -> Dict[str, TrackerConfig]:
        """Return all trackers, or only those named in ``keys`` that exist."""
        keys = list(keys or [])
        if not keys:
            return dict(self.trackers)
        return {key: self.trackers[key] for key in keys if key in self.trackers}

    # ------------------------------------------------------------------ #
    # Custom page view
    # ------------------------------------------------------------------ #

    def set_custom_page_view(self, page_view: str) -> None:
        self._custom_page_view.put(page_view)

    def get_custom_page_view(self) -> Optional[str]:
        return self._custom_page_view.drain()

    def has_custom_page_view(self) -> bool:
        return bool(self._custom_page_view)

    # ------------------------------------------------------------------ #
    # Custom variables
    # ------------------------------------------------------------------ #

    def add_custom_variable(self, custom_variable: CustomVariable) -> None:
        self._custom_variables.append(custom_variable)

    def get_custom_variables(self) -> List[CustomVariable]:
        return list(self._custom_variables)

    def has_custom_variables(self) -> bool:
        return bool(self._custom_variables)

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #

    def enqueue_event(self, event: Event) -> None:
        self._events.push(event)

    def get_event_queue(self) -> List[Event]:
        return self._events.drain()

    def has_event_queue(self) -> bool:
        return bool(self._events)

    # ------------------------------------------------------------------ #
    # Items
    # ------------------------------------------------------------------ #

    def add_item(self, item: Item) -> None:
        self._items.push(item)

    def has_items(self) -> bool:
        return bool(self._items)

    def has_item(self, item: Item) -> bool:
        """True if this very item object is queued (identity, not equality)."""
        return item in self._items

    def set_items(self, items: List[Item]) -> None:
        self._items.replace(list(items))

    def get_items(self) -> List[Item]:
        return self._items.drain()

    # ------------------------------------------------------------------ #
    # Page views
    # ------------------------------------------------------------------ #

    def enqueue_page_view(self, page_view: str) -> None:
        self._page_views.push(page_view)

    def get_page_view_queue(self) -> List[str]:
        return self._page_views.drain()

    def has_page_view_queue(self) -> bool:
        return bool(self._page_views)

    # ------------------------------------------------------------------ #
    # Transaction
    # ------------------------------------------------------------------ #

    def set_transaction(self, transaction: Transaction) -> None:
        self._transaction.put(transaction)

    def get_transaction(self) -> Optional[Transaction]:
        return self._transaction.drain()

    def has_transaction(self) -> bool:
        return bool(self._transaction)

    def is_transaction_valid(self) -> bool:
        """Check the queued transaction and items are complete enough to render.

        Never drains anything.
        """
        transaction = self._transaction.peek()
        if transaction is None or transaction.order_number is None:
            return False
        for item in self._items.peek():
            if not (item.order_number and item.sku and item.price and item.quantity):
                return False
        return True

    # ------------------------------------------------------------------ #
    # Options
    # ------------------------------------------------------------------ #

    def add_option(self, option: Option) -> "AnalyticsContext":
        self.options.append(option)
        return self

    def set_options(self, options: List[Option]) -> "AnalyticsContext":
        self.options = list(options)
        return self

    def get_options(self) -> List[Option]:
        return list(self.options)

    def has_options(self) -> bool:
        return bool(self.options)

    # ------------------------------------------------------------------ #
    # Forced page naming
    # ------------------------------------------------------------------ #

    @property
    def forced_page_name(self) -> Optional[str]:
        return self._forced_page_name

    @forced_page_name.setter
    def forced_page_name(self, value: Any) -> None:
        self._forced_page_name = None if value is None else str(value)

    def set_forced_page_name(self, name: Any) -> "AnalyticsContext":
        self.forced_page_name = name
        return self

    def set_forced_page_params(self, params: Mapping[str, Any]) -> "AnalyticsContext":
        self.forced_page_params = dict(params)
        return self

    # ------------------------------------------------------------------ #
    # Request URI
    # ------------------------------------------------------------------ #

    @property
    def request(self) -> Optional[RequestInfo]:
        return self._request

    def get_request_uri(self) -> str:
        """Derive the page identifier reported for the current request.

        A forced page name wins over the page rules; otherwise the first
        rule whose pattern matches the path renames it.  Query parameters
        are appended when ``add_params`` is on (restricted to the whitelist
        if one is set), forced page params override them, and the
        configured prefix goes in front.
        """
        if self._request is None:
            raise RuntimeError("AnalyticsContext has no request bound")
        rules = self.page_rules
        request_uri = self._request.path

        if self._forced_page_name is not None:
            request_uri = self._forced_page_name
        else:
            for rule in rules.rules:
                if rule.matches(request_uri):
                    request_uri = rule.name
                    break

        params: Dict[str, Any] = {}
        if rules.add_params:
            params = dict(self._request.query_params)
            if self.whitelist and params:
                allowed = set(self.whitelist)
                params = {k: v for k, v in params.items() if k in allowed}
        if self.forced_page_params:
            params.update(self.forced_page_params)
        if params:
            query = urlencode(_query_values(params), doseq=True)
            if query.strip():
                request_uri += "?" + query

        return rules.prefix + request_uri
