"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from taskqueue.constants import (
    METRIC_API_LATENCY,
    METRIC_API_REQUESTS,
    METRIC_CLAIM_DURATION,
    METRIC_CLAIM_FAILURES,
    METRIC_QUEUE_DEPTH,
    METRIC_TASKS_CLAIMED,
    METRIC_TASKS_COMPLETED,
    METRIC_TASKS_DELETED,
    METRIC_TASKS_SUBMITTED,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the task queue.

    Collects metrics for:
    - Queue depth
    - Task submissions, claims, completions and deletions
    - Claim iteration duration and failures
    - API requests
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of incomplete tasks",
            registry=self._registry,
        )

        self.tasks_submitted = Counter(
            METRIC_TASKS_SUBMITTED,
            "Total number of tasks submitted",
            ["task_type"],
            registry=self._registry,
        )

        self.tasks_claimed = Counter(
            METRIC_TASKS_CLAIMED,
            "Total number of tasks locked by claim iterations",
            ["worker_id"],
            registry=self._registry,
        )

        self.tasks_completed = Counter(
            METRIC_TASKS_COMPLETED,
            "Total number of tasks completed",
            ["worker_id"],
            registry=self._registry,
        )

        self.tasks_deleted = Counter(
            METRIC_TASKS_DELETED,
            "Total number of tasks soft deleted",
            registry=self._registry,
        )

        self.claim_failures = Counter(
            METRIC_CLAIM_FAILURES,
            "Total number of claim iterations rolled back",
            ["worker_id"],
            registry=self._registry,
        )

        self.claim_duration = Histogram(
            METRIC_CLAIM_DURATION,
            "Claim iteration duration in seconds",
            ["worker_id"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        self.api_requests = Counter(
            METRIC_API_REQUESTS,
            "Total number of API requests",
            ["method", "endpoint", "status"],
            registry=self._registry,
        )

        self.api_latency = Histogram(
            METRIC_API_LATENCY,
            "API request latency in seconds",
            ["method", "endpoint"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )

    def record_task_submitted(self, task_type: str) -> None:
        """Record a task submission."""
        self.tasks_submitted.labels(task_type=task_type).inc()

    def record_task_deleted(self) -> None:
        """Record a soft delete."""
        self.tasks_deleted.inc()

    def record_claim_iteration(
        self,
        worker_id: str,
        claimed: int,
        completed: int,
        duration_seconds: float,
    ) -> None:
        """Record a committed claim iteration."""
        if claimed:
            self.tasks_claimed.labels(worker_id=worker_id).inc(claimed)
        if completed:
            self.tasks_completed.labels(worker_id=worker_id).inc(completed)
        self.claim_duration.labels(worker_id=worker_id).observe(duration_seconds)

    def record_claim_failure(self, worker_id: str) -> None:
        """Record a rolled back claim iteration."""
        self.claim_failures.labels(worker_id=worker_id).inc()

    def update_queue_depth(self, depth: int) -> None:
        """Update the incomplete task gauge."""
        self.queue_depth.set(depth)

    def record_api_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration_seconds: float,
    ) -> None:
        """Record an API request."""
        self.api_requests.labels(
            method=method,
            endpoint=endpoint,
            status=str(status),
        ).inc()
        self.api_latency.labels(method=method, endpoint=endpoint).observe(
            duration_seconds
        )

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the process-wide metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    if _metrics is None:
        return setup_metrics()
    return _metrics
