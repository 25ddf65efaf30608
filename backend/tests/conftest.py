"""Shared fixtures: test settings, an ASGI client and in-memory stand-ins for the
campaigns repository and the platform role adapter."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from outreach.campaigns.domain import models
from outreach.campaigns.domain.events_service import EventsService
from outreach.campaigns.domain.exceptions import (
	AlreadyMemberError,
	ConflictError,
	ExternalSyncError,
	NotFoundError,
)
from outreach.campaigns.domain.ledger_service import LedgerService
from outreach.campaigns.domain.policies import CoordinatorPolicy
from outreach.infra import postgres
from outreach.infra.auth import Actor
from outreach.main import app
from outreach.settings import settings

MODERATOR_ROLE = "role-moderator"
COORDINATOR_ROLE = "role-coordinator"


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests identify the caller via X-Actor-* headers without a bearer token,
	which is only accepted in dev mode.
	"""
	original = (
		settings.environment,
		settings.service_token,
		settings.moderator_role_ids,
		settings.coordinator_role_ids,
	)
	settings.environment = "dev"
	settings.service_token = None
	settings.moderator_role_ids = (MODERATOR_ROLE,)
	settings.coordinator_role_ids = (COORDINATOR_ROLE,)
	try:
		yield
	finally:
		(
			settings.environment,
			settings.service_token,
			settings.moderator_role_ids,
			settings.coordinator_role_ids,
		) = original


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


def _now() -> datetime:
	return datetime.now(timezone.utc)


class InMemoryCampaignsRepository:
	"""Mirrors the store's constraints: one open event, unique memberships, unique role bindings."""

	def __init__(self) -> None:
		self.users: dict[str, models.PlatformUser] = {}
		self.event_types: set[str] = set()
		self.events: dict[UUID, models.Event] = {}
		self.groups: dict[UUID, models.Group] = {}
		self.members: dict[tuple[UUID, str], models.GroupMember] = {}
		self.role_bindings: dict[UUID, str] = {}

	async def upsert_user(self, user: models.PlatformUser) -> None:
		self.users[user.id] = user

	async def seed_event_type_if_absent(self, type_name: str) -> bool:
		if type_name in self.event_types:
			return False
		self.event_types.add(type_name)
		return True

	async def find_active_event(self) -> models.Event | None:
		return next((event for event in self.events.values() if event.end_time is None), None)

	async def create_event(self, *, leader_id: str, event_type: str, started: bool = False) -> models.Event:
		if leader_id not in self.users:
			raise NotFoundError("event_reference_not_found")
		if await self.find_active_event() is not None:
			raise ConflictError("active_event_exists", message="There is already an active event!")
		now = _now()
		event = models.Event(
			id=uuid4(),
			leader_id=leader_id,
			type=event_type,
			start_time=now if started else None,
			end_time=None,
			created_at=now,
		)
		self.events[event.id] = event
		return event

	async def start_event(self, event_id: UUID) -> models.Event | None:
		event = self.events.get(event_id)
		if event is None or event.end_time is not None or event.start_time is not None:
			return None
		event = event.model_copy(update={"start_time": _now()})
		self.events[event_id] = event
		return event

	async def end_event(self, event_id: UUID) -> models.Event | None:
		event = self.events.get(event_id)
		if event is None or event.end_time is not None:
			return None
		event = event.model_copy(update={"end_time": _now()})
		self.events[event_id] = event
		return event

	async def count_groups_for_event(self, event_id: UUID) -> int:
		return sum(1 for group in self.groups.values() if group.event_id == event_id)

	async def list_groups_for_event(self, event_id: UUID) -> list[models.Group]:
		groups = [group for group in self.groups.values() if group.event_id == event_id]
		return sorted(groups, key=lambda group: group.sequence)

	async def create_group(self, *, event_id: UUID, leader_id: str, sequence: int, role_id: str) -> models.Group:
		if role_id in self.role_bindings.values():
			raise ConflictError("role_already_bound")
		if event_id not in self.events or leader_id not in self.users:
			raise NotFoundError("event_not_found")
		now = _now()
		group = models.Group(
			id=uuid4(),
			event_id=event_id,
			leader_id=leader_id,
			sequence=sequence,
			role_id=role_id,
			created_at=now,
			updated_at=now,
		)
		self.groups[group.id] = group
		self.members[(group.id, leader_id)] = models.GroupMember(group_id=group.id, user_id=leader_id, joined_at=now)
		self.role_bindings[group.id] = role_id
		return group

	async def find_group_by_role(self, role_id: str) -> models.Group | None:
		for group_id, bound in self.role_bindings.items():
			if bound == role_id:
				return self.groups[group_id]
		return None

	async def find_group_by_leader_for_event(self, leader_id: str, event_id: UUID) -> models.Group | None:
		for group in await self.list_groups_for_event(event_id):
			if group.leader_id == leader_id:
				return group
		return None

	async def update_group_stats(self, group_id: UUID, values: Mapping[str, int]) -> models.Group | None:
		group = self.groups.get(group_id)
		if group is None:
			return None
		group = group.model_copy(update={**values, "updated_at": _now()})
		self.groups[group_id] = group
		return group

	async def is_group_member(self, group_id: UUID, user_id: str) -> bool:
		return (group_id, user_id) in self.members

	async def add_group_member(self, group_id: UUID, user_id: str) -> models.GroupMember:
		if (group_id, user_id) in self.members:
			raise AlreadyMemberError()
		if group_id not in self.groups or user_id not in self.users:
			raise NotFoundError("group_not_found")
		member = models.GroupMember(group_id=group_id, user_id=user_id, joined_at=_now())
		self.members[(group_id, user_id)] = member
		return member

	async def list_group_members(self, group_id: UUID) -> list[models.GroupMember]:
		return [member for (gid, _), member in self.members.items() if gid == group_id]

	def open_event_count(self) -> int:
		return sum(1 for event in self.events.values() if event.end_time is None)


class FakeRoleSync:
	def __init__(self) -> None:
		self.created: list[int] = []
		self.granted: list[tuple[str, str]] = []
		self.grant_ok = True
		self.create_fails = False

	async def create_role_for_group(self, sequence: int) -> str:
		if self.create_fails:
			raise ExternalSyncError("role_create_failed")
		self.created.append(sequence)
		return f"role-group-{len(self.created)}"

	async def grant_role(self, user_id: str, role_id: str) -> bool:
		if not self.grant_ok:
			return False
		self.granted.append((user_id, role_id))
		return True


@pytest.fixture
def repo() -> InMemoryCampaignsRepository:
	return InMemoryCampaignsRepository()


@pytest.fixture
def role_sync() -> FakeRoleSync:
	return FakeRoleSync()


@pytest.fixture
def events_service(repo) -> EventsService:
	return EventsService(repository=repo)


@pytest.fixture
def ledger(repo, role_sync) -> LedgerService:
	return LedgerService(
		repository=repo,
		role_sync=role_sync,
		is_coordinator=CoordinatorPolicy.from_role_ids({COORDINATOR_ROLE}),
	)


@pytest.fixture
def moderator() -> Actor:
	return Actor(id="100", display_name="mod", roles=(MODERATOR_ROLE,))


@pytest.fixture
def coordinator() -> Actor:
	return Actor(id="200", display_name="coord", roles=(COORDINATOR_ROLE,))
