from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable, List

from ..models import AlertLevel, AlertType, InteractionAlert


@dataclass
class MetricsSnapshot:
    checks_total: int
    checks_failed: int
    alerts_total: int
    alerts_by_type: Dict[str, int]
    critical_alerts: int
    avg_check_latency_ms: float = 0.0


class MetricsService:
    def __init__(self) -> None:
        self._lock = Lock()
        self._checks_total = 0
        self._checks_failed = 0
        self._alerts_by_type: Dict[str, int] = {alert_type.value: 0 for alert_type in AlertType}
        self._critical_alerts = 0
        self._latencies: List[float] = []
        self._max_latency_samples = 1000

    def record_check(self, alerts: Iterable[InteractionAlert], *, latency_ms: float) -> None:
        with self._lock:
            self._checks_total += 1
            for alert in alerts:
                self._alerts_by_type[alert.alert_type.value] += 1
                if alert.level == AlertLevel.CRITICAL:
                    self._critical_alerts += 1
            self._latencies.append(latency_ms)
            # Keep only recent samples
            if len(self._latencies) > self._max_latency_samples:
                self._latencies = self._latencies[-self._max_latency_samples:]

    def record_check_failure(self) -> None:
        with self._lock:
            self._checks_total += 1
            self._checks_failed += 1

    def reset(self) -> None:
        with self._lock:
            self._checks_total = 0
            self._checks_failed = 0
            self._alerts_by_type = {alert_type.value: 0 for alert_type in AlertType}
            self._critical_alerts = 0
            self._latencies = []

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            avg_latency = (
                sum(self._latencies) / len(self._latencies)
                if self._latencies else 0.0
            )
            return MetricsSnapshot(
                checks_total=self._checks_total,
                checks_failed=self._checks_failed,
                alerts_total=sum(self._alerts_by_type.values()),
                alerts_by_type=dict(self._alerts_by_type),
                critical_alerts=self._critical_alerts,
                avg_check_latency_ms=avg_latency,
            )


_metrics_service = MetricsService()


def get_metrics_service() -> MetricsService:
    return _metrics_service
