"""Tracker, page-naming and dashboard configuration.

Configuration arrives as a bundle-style mapping::

    {
        "trackers": {
            "default": {"name": "MyTracker", "accountId": "UA-xxxx-x",
                        "allowLinker": False},
        },
        "whitelist": ["q", "ref"],
        "dashboard": {"api_key": "...", "client_id": "...", "table_id": "..."},
        "page_rules": {
            "prefix": "/en",
            "add_params": True,
            "rules": [{"path": "^/shop/product/.*", "name": "product_detail"}],
        },
    }

and is turned into typed records once, at load time.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


# Bundle configuration keys that don't follow the camelCase-to-field rule.
_TRACKER_ALIASES = {"setSiteSpeedSampleRate": "site_speed_sample_rate"}


# ---------------------------------------------------------------------------
# Trackers
# ---------------------------------------------------------------------------


@dataclass
class TrackerConfig:
    """Settings of one named tracker.

    Every property is optional; ``None`` means "not configured" and the
    typed getters on :class:`~ga_analytics.context.AnalyticsContext`
    substitute their documented defaults.
    """

    name: Optional[str] = None
    account_id: Optional[str] = None
    domain: Optional[str] = None
    allow_anchor: Optional[bool] = None
    allow_hash: Optional[bool] = None
    allow_linker: Optional[bool] = None
    include_name_prefix: Optional[bool] = None
    site_speed_sample_rate: Optional[int] = None

    @classmethod
    def field_for(cls, prop: str) -> str:
        """Resolve a camelCase or snake_case property name to a field name."""
        name = _TRACKER_ALIASES.get(prop) or _snake_case(prop)
        if name not in {f.name for f in fields(cls)}:
            raise ValueError(f"Unknown tracker property {prop!r}")
        return name

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrackerConfig":
        values = {cls.field_for(key): value for key, value in data.items()}
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


# ---------------------------------------------------------------------------
# Page naming
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PageRule:
    """Renames request paths matching ``path`` (a regex) to ``name``."""

    path: str
    name: str
    pattern: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", re.compile(self.path))

    def matches(self, uri: str) -> bool:
        return self.pattern.search(uri) is not None


@dataclass(frozen=True)
class PageRules:
    prefix: str = ""
    rules: Tuple[PageRule, ...] = ()
    add_params: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PageRules":
        rules = tuple(
            rule if isinstance(rule, PageRule) else PageRule(rule["path"], rule["name"])
            for rule in data.get("rules") or ()
        )
        return cls(
            prefix=data.get("prefix") or "",
            rules=rules,
            add_params=data.get("add_params") is True,
        )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@dataclass
class DashboardConfig:
    """Reporting API credentials, passed through untouched."""

    api_key: str = ""
    client_id: str = ""
    table_id: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DashboardConfig":
        return cls(
            api_key=data.get("api_key", ""),
            client_id=data.get("client_id", ""),
            table_id=data.get("table_id", ""),
        )


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def load_trackers(trackers: Optional[Mapping[str, Any]]) -> Dict[str, TrackerConfig]:
    return {
        key: value if isinstance(value, TrackerConfig) else TrackerConfig.from_dict(value)
        for key, value in (trackers or {}).items()
    }


def load_page_rules(page_rules: Any) -> PageRules:
    if page_rules is None:
        return PageRules()
    if isinstance(page_rules, PageRules):
        return page_rules
    return PageRules.from_dict(page_rules)


def load_dashboard(dashboard: Any) -> DashboardConfig:
    if dashboard is None:
        return DashboardConfig()
    if isinstance(dashboard, DashboardConfig):
        return dashboard
    return DashboardConfig.from_dict(dashboard)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass
class AnalyticsSettings:
    """Everything an :class:`AnalyticsContext` is built from, minus request state."""

    trackers: Dict[str, TrackerConfig] = field(default_factory=dict)
    whitelist: List[str] = field(default_factory=list)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    page_rules: PageRules = field(default_factory=PageRules)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnalyticsSettings":
        settings = cls(
            trackers=load_trackers(data.get("trackers")),
            whitelist=list(data.get("whitelist") or []),
            dashboard=load_dashboard(data.get("dashboard")),
            page_rules=load_page_rules(data.get("page_rules")),
        )
        logger.debug(
            "Loaded analytics settings: %d tracker(s), %d page rule(s)",
            len(settings.trackers),
            len(settings.page_rules.rules),
        )
        return settings

    @classmethod
    def from_env(cls) -> "AnalyticsSettings":
        """Load settings from the environment.

        ``GA_ANALYTICS_CONFIG`` points at a JSON file in the
        :meth:`from_dict` layout.  Without it, ``GA_ANALYTICS_TRACKER_ID``
        (and optionally ``GA_ANALYTICS_TRACKER_NAME``) configure a single
        ``default`` tracker.
        """
        path = os.environ.get("GA_ANALYTICS_CONFIG")
        if path:
            with open(path, encoding="utf-8") as fh:
                return cls.from_dict(json.load(fh))

        account_id = os.environ.get("GA_ANALYTICS_TRACKER_ID")
        if not account_id:
            return cls()
        tracker = TrackerConfig(
            account_id=account_id,
            name=os.environ.get("GA_ANALYTICS_TRACKER_NAME"),
        )
        return cls(trackers={"default": tracker})
