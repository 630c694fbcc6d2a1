"""Google Analytics tracking payloads.

Plain value objects queued on the analytics context and handed to the
rendering layer as-is.  Field names follow the classic ``ga.js`` calls
(``_trackEvent``, ``_addTrans``, ``_addItem``, ``_setCustomVar``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class CustomVariableScope(IntEnum):
    """Custom variable scopes as numbered by ``_setCustomVar``."""

    VISITOR = 1
    SESSION = 2
    PAGE = 3


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class _Payload:
    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict (drop None fields)."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class Event(_Payload):
    """A single ``_trackEvent`` call."""

    category: str
    action: str
    label: Optional[str] = None
    value: Optional[int] = None
    non_interaction: bool = False


@dataclass
class Item(_Payload):
    """An e-commerce line item belonging to a transaction."""

    order_number: Optional[str] = None
    sku: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None


@dataclass
class Transaction(_Payload):
    """An e-commerce transaction (``_addTrans``)."""

    order_number: Optional[str] = None
    affiliation: Optional[str] = None
    total: Optional[float] = None
    tax: Optional[float] = None
    shipping: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


@dataclass
class CustomVariable(_Payload):
    index: int
    name: str
    value: str
    scope: CustomVariableScope = CustomVariableScope.PAGE

    def __post_init__(self) -> None:
        self.scope = CustomVariableScope(self.scope)

    def to_dict(self) -> Dict[str, Any]:
        row = super().to_dict()
        row["scope"] = int(self.scope)
        return row


@dataclass
class Option(_Payload):
    """A tracker-level option rendered as ``_set<name>(value)``."""

    name: str
    value: Any


PAYLOAD_TYPES = {
    cls.__name__: cls for cls in (Event, Item, Transaction, CustomVariable, Option)
}
