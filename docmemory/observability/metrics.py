import threading
from collections import deque
from typing import Dict


# Latency history is bounded so a long-running process does not grow forever
_MAX_LATENCIES = 1000


class MetricsTracker:

    def __init__(self, max_latencies: int = _MAX_LATENCIES):

        self._lock = threading.Lock()

        self._metrics = {

            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,

            "total_latency": 0.0,
            "avg_latency": 0.0,

        }

        self._latencies = deque(maxlen=max_latencies)


    def record_success(self, latency: float):

        with self._lock:

            self._metrics["total_requests"] += 1

            self._metrics["successful_requests"] += 1

            self._metrics["total_latency"] += latency

            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["successful_requests"]
            )

            self._latencies.append(latency)


    def record_failure(self):

        with self._lock:

            self._metrics["total_requests"] += 1

            self._metrics["failed_requests"] += 1


    def get_metrics(self) -> Dict:

        with self._lock:

            snapshot = dict(self._metrics)

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
