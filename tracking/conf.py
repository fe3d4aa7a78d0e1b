"""Settings accessors for the batch tracking subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

DEFAULT_WEEKS_PER_BUILDING = 8
DEFAULT_LATEST_BATCHES_LIMIT = 10
DEFAULT_FEED_ATTENTION_THRESHOLD_KG = Decimal("10000")


@dataclass(frozen=True)
class RouteSyncPolicy:
    """Coupling between the visible route and the navigator selection."""

    enabled: bool = True
    dashboard_path: str = "/"

    def is_dashboard(self, path: str) -> bool:
        return _normalize(path) == _normalize(self.dashboard_path)


def weeks_per_building() -> int:
    weeks = int(getattr(settings, "TRACKING_WEEKS_PER_BUILDING", DEFAULT_WEEKS_PER_BUILDING))
    if weeks < 1:
        raise ValueError("TRACKING_WEEKS_PER_BUILDING must be at least 1.")
    return weeks


def latest_batches_limit() -> int | None:
    limit = getattr(settings, "TRACKING_LATEST_BATCHES_LIMIT", DEFAULT_LATEST_BATCHES_LIMIT)
    return int(limit) if limit else None


def feed_attention_threshold() -> Decimal:
    value = getattr(settings, "TRACKING_FEED_ATTENTION_THRESHOLD_KG", DEFAULT_FEED_ATTENTION_THRESHOLD_KG)
    return Decimal(str(value))


def route_sync_policy() -> RouteSyncPolicy:
    options = getattr(settings, "TRACKING_ROUTE_SYNC", None) or {}
    defaults = RouteSyncPolicy()
    return RouteSyncPolicy(
        enabled=bool(options.get("ENABLED", defaults.enabled)),
        dashboard_path=options.get("DASHBOARD_PATH", defaults.dashboard_path),
    )


def _normalize(path: str) -> str:
    path = (path or "/").split("?", 1)[0]
    stripped = path.rstrip("/")
    return stripped or "/"
