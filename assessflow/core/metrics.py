"""Prometheus metric inventory.

Every metric the service exports is declared here; the owning modules
import and increment them at the point of action.  The workflow metrics
are the ones worth alerting on: a non-zero rate of
``finalize_race_losses_total`` is normal (timers and last-second manual
submits collide), but ``attempt_timers_active`` growing without bound
means timers are not being cancelled on manual submission.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Quiz attempts
# ---------------------------------------------------------------------------

ATTEMPTS_STARTED = Counter(
    "attempts_started_total",
    "Quiz attempts successfully started",
)

ATTEMPTS_FINALIZED = Counter(
    "attempts_finalized_total",
    "Quiz attempts committed to a terminal state, by finalize reason",
    ["reason"],  # "manual" or "timeout"
)

FINALIZE_RACE_LOSSES = Counter(
    "finalize_race_losses_total",
    "Finalize calls that lost the first-writer-wins contest",
)

ATTEMPT_TIMERS_ACTIVE = Gauge(
    "attempt_timers_active",
    "Countdown timers scheduled and not yet fired or cancelled",
)

# ---------------------------------------------------------------------------
# Assignment submissions
# ---------------------------------------------------------------------------

SUBMISSIONS_CREATED = Counter(
    "submissions_created_total",
    "Assignment submissions accepted",
    ["late"],  # "true" or "false"
)

REVIEW_ACTIONS = Counter(
    "review_actions_total",
    "Instructor review actions by action and outcome code",
    ["action", "outcome"],
)

# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

NOTIFICATIONS_EMITTED = Counter(
    "notifications_emitted_total",
    "Workflow events handed to the notification collaborator",
    ["type"],
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
