"""Read-through cache of the currently deployed custom metrics.

The list lives behind an HTTP endpoint owned by the model service. It is cached
process-wide with a fixed time-to-live; concurrent refreshes are harmless because
each refresh stores the same list for its window.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_CATEGORY = "Custom Models"

type DashboardType = Literal["pitcher", "hitter"]


class DeployedMetricSourceError(Exception):
    """The deployed-metric endpoint could not be reached or returned an unusable body."""


@dataclass(frozen=True)
class DeployConfig:
    pitcher_tab: bool = False
    hitter_tab: bool = False
    reports_builder: bool = True
    category: str | None = None
    decimals: int | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> DeployConfig:
        raw = raw or {}
        tabs = raw.get("dashboardTabs") or {}
        fmt = raw.get("format") or {}
        decimals = fmt.get("decimals")
        return cls(
            pitcher_tab=bool(tabs.get("pitcher")),
            hitter_tab=bool(tabs.get("hitter")),
            reports_builder=raw.get("reportsBuilder") is not False,
            category=raw.get("category") or None,
            decimals=int(decimals) if decimals is not None else None,
        )


@dataclass(frozen=True)
class DeployedMetric:
    id: str
    name: str
    formula: str
    column_name: str
    status: str = "deployed"
    description: str | None = None
    deploy_config: DeployConfig = field(default_factory=DeployConfig)
    deployed_at: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> DeployedMetric:
        return cls(
            id=str(raw["id"]),
            name=str(raw["name"]),
            formula=str(raw.get("formula", "")),
            column_name=str(raw["column_name"]),
            status=str(raw.get("status", "deployed")),
            description=raw.get("description"),
            deploy_config=DeployConfig.from_dict(raw.get("deploy_config")),
            deployed_at=raw.get("deployed_at"),
        )


@dataclass(frozen=True)
class MetricFilterDef:
    key: str
    label: str
    category: str
    type: str = "range"


class DeployedMetricSource(Protocol):
    def fetch(self) -> list[DeployedMetric]: ...


class HttpDeployedMetricSource:
    def __init__(self, base_url: str, client: httpx.Client | None = None, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def fetch(self) -> list[DeployedMetric]:
        url = f"{self._base_url}/api/models"
        try:
            response = self._client.get(url, params={"status": "deployed"})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise DeployedMetricSourceError(f"Failed to fetch deployed metrics from {url}: {exc}") from exc
        try:
            return [DeployedMetric.from_dict(m) for m in payload.get("models") or []]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise DeployedMetricSourceError(f"Malformed deployed metric payload from {url}: {exc}") from exc


class DeployedMetricCache:
    def __init__(
        self,
        source: DeployedMetricSource,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._metrics: list[DeployedMetric] | None = None
        self._fetched_at: float | None = None

    @property
    def is_cold(self) -> bool:
        return self._metrics is None

    def get(self) -> list[DeployedMetric]:
        """Return the cached list, refreshing it once the TTL has elapsed.

        A failed refresh keeps serving the previous list (empty on a cold start).
        """
        now = self._clock()
        if self._metrics is not None and self._fetched_at is not None and now - self._fetched_at < self._ttl_seconds:
            return list(self._metrics)
        try:
            metrics = self._source.fetch()
        except DeployedMetricSourceError as exc:
            logger.warning("Serving %s deployed metric list: %s", "empty" if self.is_cold else "stale", exc)
            return list(self._metrics or [])
        logger.debug("Refreshed deployed metric list (%d metrics)", len(metrics))
        self._metrics = metrics
        self._fetched_at = now
        return list(metrics)

    def invalidate(self) -> None:
        self._metrics = None
        self._fetched_at = None


_cache: DeployedMetricCache | None = None


def get_deployed_metric_cache(
    source: DeployedMetricSource | None = None,
    ttl_seconds: float = DEFAULT_TTL_SECONDS,
) -> DeployedMetricCache:
    """Return the process-wide cache, creating it (cold) on first use.

    ``source`` is required on the first call; later calls reuse the existing cache.
    """
    global _cache
    if _cache is None:
        if source is None:
            raise ValueError("a deployed metric source is required to create the cache")
        _cache = DeployedMetricCache(source, ttl_seconds=ttl_seconds)
    return _cache


def reset_deployed_metric_cache() -> None:
    global _cache
    _cache = None


def filter_defs(metrics: Sequence[DeployedMetric]) -> list[MetricFilterDef]:
    """Range filters for the report builder, one per metric not opted out of it."""
    return [
        MetricFilterDef(
            key=m.column_name,
            label=m.name,
            category=m.deploy_config.category or DEFAULT_CATEGORY,
        )
        for m in metrics
        if m.deploy_config.reports_builder
    ]


def column_names(metrics: Sequence[DeployedMetric]) -> list[str]:
    return [m.column_name for m in metrics]


def dashboard_metrics(metrics: Sequence[DeployedMetric], dashboard: DashboardType) -> list[DeployedMetric]:
    if dashboard == "pitcher":
        return [m for m in metrics if m.deploy_config.pitcher_tab]
    return [m for m in metrics if m.deploy_config.hitter_tab]
