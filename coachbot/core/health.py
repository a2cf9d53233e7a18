"""Process-wide health registry for retrieval integrations.

The FAQ service records whether answers came from the vector path, the text
fallback, or nowhere; the CLI renders the registry after a search.
"""

from __future__ import annotations

import threading
import time
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

__all__ = [
    "FeatureStatus",
    "FeatureState",
    "HealthSnapshot",
    "HealthRegistry",
    "report_feature",
    "get_health_snapshot",
    "reset_health",
    "render_health_lines",
]


class FeatureStatus(str, Enum):
    """Severity-aware status used to describe feature health."""

    OK = "ok"
    DEGRADED = "degraded"
    DISABLED = "disabled"
    UNAVAILABLE = "unavailable"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def display(self) -> str:
        return self.value.capitalize() if self is not FeatureStatus.OK else "OK"


_SEVERITY = {
    FeatureStatus.OK: 0,
    FeatureStatus.DEGRADED: 1,
    FeatureStatus.DISABLED: 2,
    FeatureStatus.UNAVAILABLE: 3,
}


@dataclass(slots=True, frozen=True)
class FeatureState:
    """Last reported health of one integration (embeddings, vector RPC, text fallback)."""

    key: str
    label: str
    status: FeatureStatus
    category: str = "general"
    detail: Optional[str] = None
    using_fallback: bool = False
    metadata: Mapping[str, Any] = field(default_factory=dict)
    updated_at: float = field(default_factory=time.time)


@dataclass(slots=True, frozen=True)
class HealthSnapshot:
    features: Tuple[FeatureState, ...]
    generated_at: float

    @property
    def counts(self) -> Dict[FeatureStatus, int]:
        tally = Counter(feature.status for feature in self.features)
        return {status: tally.get(status, 0) for status in FeatureStatus}

    def overall_status(self) -> FeatureStatus:
        return max(
            (feature.status for feature in self.features),
            key=lambda status: status.severity,
            default=FeatureStatus.OK,
        )

    def get(self, key: str) -> Optional[FeatureState]:
        return next((feature for feature in self.features if feature.key == key), None)

    def with_status(self, status: FeatureStatus) -> List[FeatureState]:
        return [feature for feature in self.features if feature.status is status]


class HealthRegistry:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._features: Dict[str, FeatureState] = {}

    def report(
        self,
        key: str,
        *,
        status: FeatureStatus,
        label: Optional[str] = None,
        category: str = "general",
        detail: Optional[str] = None,
        using_fallback: bool = False,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> FeatureState:
        with self._lock:
            previous = self._features.get(key)
            state = FeatureState(
                key=key,
                label=label or (previous.label if previous else key),
                status=status,
                category=category,
                detail=detail,
                using_fallback=using_fallback,
                metadata=dict(metadata or {}),
            )
            self._features[key] = state
        return state

    def snapshot(self) -> HealthSnapshot:
        with self._lock:
            # States are frozen; only the mutable metadata needs copying.
            features = [replace(item, metadata=dict(item.metadata)) for item in self._features.values()]
        features.sort(key=lambda feature: (-feature.status.severity, feature.label.lower()))
        return HealthSnapshot(features=tuple(features), generated_at=time.time())

    def clear(self) -> None:
        with self._lock:
            self._features.clear()


_registry = HealthRegistry()


def report_feature(
    key: str,
    *,
    status: FeatureStatus,
    label: Optional[str] = None,
    category: str = "general",
    detail: Optional[str] = None,
    using_fallback: bool = False,
    metadata: Optional[Mapping[str, Any]] = None,
) -> FeatureState:
    """Record the health of `key`, keeping its previous label when none is given."""

    return _registry.report(
        key,
        status=status,
        label=label,
        category=category,
        detail=detail,
        using_fallback=using_fallback,
        metadata=metadata,
    )


def get_health_snapshot() -> HealthSnapshot:
    return _registry.snapshot()


def reset_health() -> None:
    _registry.clear()


def _feature_line(feature: FeatureState) -> str:
    line = f"  - {feature.label}"
    if feature.using_fallback:
        line += " [fallback]"
    if feature.detail:
        line += f": {feature.detail}"
    return line


def render_health_lines(
    snapshot: HealthSnapshot,
    *,
    per_status_limit: int = 4,
    include_ok: bool = False,
) -> List[str]:
    """Summarise a snapshot, worst status first; OK features are hidden unless asked for."""

    groups: List[List[str]] = []
    for status in sorted(FeatureStatus, key=lambda item: item.severity, reverse=True):
        if status is FeatureStatus.OK and not include_ok:
            continue
        matching = snapshot.with_status(status)
        if not matching:
            continue
        group = [f"{status.display} ({len(matching)})"]
        group.extend(_feature_line(feature) for feature in matching[:per_status_limit])
        hidden = len(matching) - per_status_limit
        if hidden > 0:
            group.append(f"  - ...and {hidden} more.")
        groups.append(group)

    if not groups:
        return ["OK (0)", "  - All monitored subsystems report OK."]

    lines = groups[0]
    for group in groups[1:]:
        lines += ["", *group]
    return lines
