"""Central registry for Prometheus metrics used across the service."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"outreach_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"outreach_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

EVENT_TRANSITIONS = Counter(
	"outreach_event_transitions_total",
	"Outreach event lifecycle transitions",
	["transition"],
)

GROUPS_CREATED = Counter(
	"outreach_groups_created_total",
	"Outreach groups created",
)

GROUP_MEMBERS_ADDED = Counter(
	"outreach_group_members_added_total",
	"Members added to outreach groups",
)

GROUP_STATS_UPDATED = Counter(
	"outreach_group_stats_updated_total",
	"Outreach group statistic updates",
)

ACTIONS_DECLINED = Counter(
	"outreach_actions_declined_total",
	"Commands declined by invariant or authorization checks",
	["reason"],
)

ROLE_SYNC_FAILURES = Counter(
	"outreach_role_sync_failures_total",
	"Platform role mirroring failures after a committed ledger write",
	["operation"],
)

POSTGRES_UP = Gauge(
	"outreach_postgres_up",
	"Whether the last readiness probe reached Postgres",
)

POSTGRES_LATENCY = Histogram(
	"outreach_postgres_ping_seconds",
	"Latency of the readiness probe query",
	buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.3, 1.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_event_transition(transition: str) -> None:
	EVENT_TRANSITIONS.labels(transition=transition).inc()


def inc_group_created() -> None:
	GROUPS_CREATED.inc()


def inc_member_added() -> None:
	GROUP_MEMBERS_ADDED.inc()


def inc_stats_updated() -> None:
	GROUP_STATS_UPDATED.inc()


def inc_declined(reason: str) -> None:
	ACTIONS_DECLINED.labels(reason=reason).inc()


def inc_role_sync_failure(operation: str) -> None:
	ROLE_SYNC_FAILURES.labels(operation=operation).inc()


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
