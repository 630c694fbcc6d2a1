"""Session-backed storage for queued tracking facts.

Facts that must survive a redirect (events, page views, e-commerce data)
live in the user's session.  :class:`SessionQueue` and
:class:`SessionValue` layer one-shot "read removes" semantics over any
:class:`SessionStore`.
"""

from __future__ import annotations

import logging
from dataclasses import is_dataclass
from typing import Any, Dict, List, Mapping, MutableMapping, Protocol

from ga_analytics.events import PAYLOAD_TYPES

logger = logging.getLogger(__name__)

EVENT_QUEUE_KEY = "google_analytics/event/queue"
CUSTOM_PAGE_VIEW_KEY = "google_analytics/page_view"
PAGE_VIEW_QUEUE_KEY = "google_analytics/page_view/queue"
TRANSACTION_KEY = "google_analytics/transaction"
ITEMS_KEY = "google_analytics/items"

_TYPE_TAG = "__ga_type__"


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


class SessionStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class RequestInfo(Protocol):
    """The parts of the current HTTP request used for page naming."""

    @property
    def path(self) -> str: ...

    @property
    def query_params(self) -> Mapping[str, str]: ...


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class InMemorySession:
    """Dict-backed session store."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data if data is not None else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


def encode(value: Any) -> Any:
    """Turn payload objects into JSON-safe tagged dicts."""
    if isinstance(value, list):
        return [encode(v) for v in value]
    if is_dataclass(value) and type(value).__name__ in PAYLOAD_TYPES:
        return {_TYPE_TAG: type(value).__name__, **value.to_dict()}
    return value


def decode(value: Any) -> Any:
    if isinstance(value, list):
        return [decode(v) for v in value]
    if isinstance(value, dict) and _TYPE_TAG in value:
        data = dict(value)
        cls = PAYLOAD_TYPES[data.pop(_TYPE_TAG)]
        return cls(**data)
    return value


class RequestSession:
    """Adapts a JSON-only session mapping (e.g. Starlette's ``request.session``).

    Payloads are encoded on write and rebuilt on first read.  Within one
    request every read of a key returns the same live objects, so identity
    checks such as :meth:`SessionQueue.__contains__` behave as expected.
    Call :meth:`flush` before the session is persisted to pick up in-place
    mutations of live values.
    """

    def __init__(self, session: MutableMapping[str, Any]) -> None:
        self._session = session
        self._live: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._live:
            return self._live[key]
        if key not in self._session:
            return default
        value = decode(self._session[key])
        self._live[key] = value
        return value

    def set(self, key: str, value: Any) -> None:
        self._live[key] = value
        self._session[key] = encode(value)

    def remove(self, key: str) -> None:
        self._live.pop(key, None)
        self._session.pop(key, None)

    def flush(self) -> None:
        for key, value in self._live.items():
            self._session[key] = encode(value)


# ---------------------------------------------------------------------------
# Queue / optional-value views
# ---------------------------------------------------------------------------


class SessionQueue:
    """An ordered list stored under one session key."""

    def __init__(self, store: SessionStore, key: str) -> None:
        self.store = store
        self.key = key

    def push(self, value: Any) -> None:
        bucket = self.store.get(self.key, [])
        bucket.append(value)
        self.store.set(self.key, bucket)

    def replace(self, values: List[Any]) -> None:
        self.store.set(self.key, values)

    def peek(self) -> List[Any]:
        return list(self.store.get(self.key, []))

    def drain(self) -> List[Any]:
        values = self.store.get(self.key, [])
        self.store.remove(self.key)
        logger.debug("Drained %d value(s) from %s", len(values), self.key)
        return values

    def __bool__(self) -> bool:
        return bool(self.store.get(self.key, []))

    def __contains__(self, value: Any) -> bool:
        return any(v is value for v in self.store.get(self.key, []))


class SessionValue:
    """At most one value stored under one session key."""

    def __init__(self, store: SessionStore, key: str) -> None:
        self.store = store
        self.key = key

    def put(self, value: Any) -> None:
        self.store.set(self.key, value)

    def peek(self) -> Any:
        return self.store.get(self.key)

    def drain(self) -> Any:
        value = self.store.get(self.key)
        self.store.remove(self.key)
        return value

    def __bool__(self) -> bool:
        return bool(self.store.get(self.key))
