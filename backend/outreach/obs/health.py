"""Liveness and readiness checks for the outreach service.

Readiness covers what a command needs before it can succeed: a reachable
store at the required schema version, the configured event type seeded, and a
role adapter able to mirror groups onto the chat platform.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Tuple

import asyncpg

from outreach.infra import postgres
from outreach.obs import metrics
from outreach.settings import settings

LOGGER = logging.getLogger(__name__)

Check = Dict[str, Any]


async def _store_checks(conn: asyncpg.Connection, timeout: float) -> Dict[str, Check]:
	start = perf_counter()
	await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
	latency = perf_counter() - start
	metrics.mark_postgres(True, latency_seconds=latency)
	checks: Dict[str, Check] = {"postgres": {"ok": True, "latency_ms": round(latency * 1000, 2)}}

	try:
		version = await conn.fetchval("SELECT MAX(version) FROM schema_migrations")
	except asyncpg.UndefinedTableError:
		version = None
	required = settings.health_min_migration
	if version is None:
		checks["migrations"] = {"ok": False, "error": "no_migrations", "required": required}
	else:
		checks["migrations"] = {"ok": str(version) >= required, "version": str(version), "required": required}

	if not checks["migrations"]["ok"]:
		# The outreach tables may not exist yet.
		checks["event_type"] = {"ok": False, "error": "schema_pending"}
		return checks
	seeded = await conn.fetchval("SELECT 1 FROM outreach_event_type WHERE type=$1", settings.event_type)
	checks["event_type"] = {"ok": seeded is not None, "type": settings.event_type}
	return checks


def _role_sync_check() -> Check:
	if settings.discord_bot_token and settings.discord_guild_id:
		return {"ok": True, "mode": "discord"}
	if settings.is_dev():
		return {"ok": True, "mode": "local"}
	return {"ok": False, "mode": "unconfigured"}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness(timeout: float = 0.3) -> Tuple[int, Dict[str, Any]]:
	checks: Dict[str, Check]
	try:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			checks = await _store_checks(conn, timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_postgres(False)
		LOGGER.warning("outreach_readiness_store_failed", exc_info=True)
		checks = {"postgres": {"ok": False, "error": str(exc)}}
	checks["role_sync"] = _role_sync_check()

	ok = all(check.get("ok") for check in checks.values())
	return (200 if ok else 503), {"status": "ok" if ok else "degraded", "checks": checks}
