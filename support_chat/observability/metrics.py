import json
import logging
import os
import threading
from collections import deque
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Latency samples kept for percentile calculation
_MAX_LATENCY_SAMPLES = 5000


class MetricsTracker:
    """
    Request and pipeline counters for the /metrics endpoint.

    In memory by default; with `path` set, every update is also written
    to that JSON file and reloaded on start.
    """

    def __init__(self, path: Optional[str] = None):

        self._path = path
        self._lock = threading.Lock()

        self._metrics: Dict[str, Any] = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "total_latency": 0.0,
            "avg_latency": 0.0,
            "events": {},
        }

        self._latencies = deque(maxlen=_MAX_LATENCY_SAMPLES)

        self._load()

    def _load(self):

        if not self._path or not os.path.exists(self._path):
            return

        try:

            with open(self._path, "r") as f:
                data = json.load(f)

            self._latencies.extend(data.pop("latencies", []))
            data.setdefault("events", {})
            self._metrics.update(data)

        except (OSError, ValueError) as e:
            logger.warning(
                "Metrics file unreadable, starting fresh",
                extra={"path": self._path, "error": str(e)},
            )

    def _save(self):

        if not self._path:
            return

        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)

        with open(self._path, "w") as f:
            json.dump(
                {**self._metrics, "latencies": list(self._latencies)},
                f,
                indent=2,
            )

    def record_success(self, latency: float):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["successful_requests"] += 1
            self._metrics["total_latency"] += latency
            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["total_requests"]
            )

            self._latencies.append(latency)

            self._save()

    def record_failure(self):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["failed_requests"] += 1

            self._save()

    def record_event(self, name: str):
        """Count a pipeline event (message_processed, document_ingested, ...)."""

        with self._lock:

            events = self._metrics["events"]
            events[name] = events.get(name, 0) + 1

            self._save()

    def get_metrics(self) -> Dict[str, Any]:

        with self._lock:
            snapshot = dict(self._metrics)
            snapshot["events"] = dict(self._metrics["events"])

        snapshot["p50_latency"] = self.get_latency_percentile(50)
        snapshot["p95_latency"] = self.get_latency_percentile(95)

        return snapshot

    def get_latency_percentile(self, percentile: float) -> float:

        with self._lock:
            latencies = sorted(self._latencies)

        if not latencies:
            return 0.0

        index = int(len(latencies) * percentile / 100)

        index = min(index, len(latencies) - 1)

        return latencies[index]

    def reset(self):

        with self._lock:

            self._metrics.update(
                total_requests=0,
                successful_requests=0,
                failed_requests=0,
                total_latency=0.0,
                avg_latency=0.0,
                events={},
            )
            self._latencies.clear()

            self._save()


metrics_tracker = MetricsTracker(os.getenv("METRICS_PATH"))
