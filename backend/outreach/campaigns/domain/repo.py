"""Async repository helpers for the outreach campaigns domain."""

from __future__ import annotations

from typing import Mapping
from uuid import UUID, uuid4

import asyncpg

from outreach.campaigns.domain import models
from outreach.campaigns.domain.exceptions import AlreadyMemberError, ConflictError, NotFoundError
from outreach.infra.postgres import get_pool

_GROUP_SELECT = """
	SELECT g.*, r.role_id
	FROM outreach_group g
	LEFT JOIN outreach_group_role r ON r.group_id = g.id
"""


def _group(record: asyncpg.Record | Mapping) -> models.Group:
	return models.Group.model_validate(dict(record))


class CampaignsRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Users ------------------------------------------------------------

	async def upsert_user(self, user: models.PlatformUser) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO outreach_user (id, display_name)
				VALUES ($1, $2)
				ON CONFLICT (id) DO UPDATE
				SET display_name = COALESCE(EXCLUDED.display_name, outreach_user.display_name),
					updated_at = NOW()
				""",
				user.id,
				user.display_name,
			)

	# --- Event types ------------------------------------------------------

	async def seed_event_type_if_absent(self, type_name: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			inserted = await conn.fetchval(
				"""
				INSERT INTO outreach_event_type (type)
				VALUES ($1)
				ON CONFLICT (type) DO NOTHING
				RETURNING type
				""",
				type_name,
			)
		return inserted is not None

	# --- Events -----------------------------------------------------------

	async def find_active_event(self) -> models.Event | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM outreach_event WHERE end_time IS NULL LIMIT 1")
		return models.Event.model_validate(dict(record)) if record else None

	async def create_event(self, *, leader_id: str, event_type: str, started: bool = False) -> models.Event:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO outreach_event (id, leader_id, type, start_time)
					VALUES ($1, $2, $3, CASE WHEN $4 THEN NOW() ELSE NULL END)
					RETURNING *
					""",
					uuid4(),
					leader_id,
					event_type,
					started,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise ConflictError(
					"active_event_exists",
					message="There is already an active event!",
				) from exc
			except asyncpg.ForeignKeyViolationError as exc:  # type: ignore[attr-defined]
				raise NotFoundError("event_reference_not_found") from exc
		return models.Event.model_validate(dict(record))

	async def start_event(self, event_id: UUID) -> models.Event | None:
		"""Stamp ``start_time`` on an open, not yet started event."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE outreach_event
				SET start_time = NOW()
				WHERE id=$1 AND end_time IS NULL AND start_time IS NULL
				RETURNING *
				""",
				event_id,
			)
		return models.Event.model_validate(dict(record)) if record else None

	async def end_event(self, event_id: UUID) -> models.Event | None:
		"""Close an open event. Returns ``None`` if it was already closed."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE outreach_event
				SET end_time = NOW()
				WHERE id=$1 AND end_time IS NULL
				RETURNING *
				""",
				event_id,
			)
		return models.Event.model_validate(dict(record)) if record else None

	# --- Groups -----------------------------------------------------------

	async def count_groups_for_event(self, event_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			count = await conn.fetchval("SELECT COUNT(*) FROM outreach_group WHERE event_id=$1", event_id)
		return int(count or 0)

	async def list_groups_for_event(self, event_id: UUID) -> list[models.Group]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				_GROUP_SELECT + " WHERE g.event_id=$1 ORDER BY g.sequence ASC, g.created_at ASC",
				event_id,
			)
		return [_group(row) for row in rows]

	async def create_group(
		self,
		*,
		event_id: UUID,
		leader_id: str,
		sequence: int,
		role_id: str,
	) -> models.Group:
		"""Insert the group, its leader membership and its role binding atomically."""
		pool = await get_pool()
		group_id = uuid4()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					record = await conn.fetchrow(
						"""
						INSERT INTO outreach_group (id, event_id, leader_id, sequence)
						VALUES ($1, $2, $3, $4)
						RETURNING *
						""",
						group_id,
						event_id,
						leader_id,
						sequence,
					)
					await conn.execute(
						"""
						INSERT INTO outreach_group_member (group_id, user_id)
						VALUES ($1, $2)
						""",
						group_id,
						leader_id,
					)
					await conn.execute(
						"""
						INSERT INTO outreach_group_role (group_id, role_id)
						VALUES ($1, $2)
						""",
						group_id,
						role_id,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("role_already_bound") from exc
				except asyncpg.ForeignKeyViolationError as exc:  # type: ignore[attr-defined]
					raise NotFoundError("event_not_found") from exc
		payload = dict(record)
		payload["role_id"] = role_id
		return _group(payload)

	async def find_group_by_role(self, role_id: str) -> models.Group | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(_GROUP_SELECT + " WHERE r.role_id=$1", role_id)
		return _group(record) if record else None

	async def find_group_by_leader_for_event(self, leader_id: str, event_id: UUID) -> models.Group | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				_GROUP_SELECT + " WHERE g.leader_id=$1 AND g.event_id=$2 ORDER BY g.sequence ASC LIMIT 1",
				leader_id,
				event_id,
			)
		return _group(record) if record else None

	async def update_group_stats(self, group_id: UUID, values: Mapping[str, int]) -> models.Group | None:
		columns = [name for name in models.STAT_FIELDS if name in values]
		if not columns:
			raise ValueError("no statistics to update")
		assignments = ", ".join(f"{name} = ${idx}" for idx, name in enumerate(columns, start=2))
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				updated = await conn.fetchval(
					f"UPDATE outreach_group SET {assignments}, updated_at = NOW() WHERE id=$1 RETURNING id",
					group_id,
					*[values[name] for name in columns],
				)
				if updated is None:
					return None
				record = await conn.fetchrow(_GROUP_SELECT + " WHERE g.id=$1", group_id)
		return _group(record)

	# --- Membership -------------------------------------------------------

	async def is_group_member(self, group_id: UUID, user_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			found = await conn.fetchval(
				"SELECT 1 FROM outreach_group_member WHERE group_id=$1 AND user_id=$2",
				group_id,
				user_id,
			)
		return found is not None

	async def add_group_member(self, group_id: UUID, user_id: str) -> models.GroupMember:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO outreach_group_member (group_id, user_id)
					VALUES ($1, $2)
					RETURNING *
					""",
					group_id,
					user_id,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise AlreadyMemberError() from exc
			except asyncpg.ForeignKeyViolationError as exc:  # type: ignore[attr-defined]
				raise NotFoundError("group_not_found") from exc
		return models.GroupMember.model_validate(dict(record))

	async def list_group_members(self, group_id: UUID) -> list[models.GroupMember]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM outreach_group_member WHERE group_id=$1 ORDER BY joined_at ASC",
				group_id,
			)
		return [models.GroupMember.model_validate(dict(row)) for row in rows]
