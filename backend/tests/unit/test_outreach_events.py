from __future__ import annotations

import pytest

from outreach.campaigns.domain.exceptions import ConflictError, NoActiveEventError, NotFoundError
from outreach.campaigns.domain.models import PlatformUser
from outreach.infra.auth import Actor
from outreach.main import seed_event_types
from outreach.settings import settings


@pytest.mark.asyncio
async def test_create_event_then_second_create_conflicts(events_service, repo, moderator):
	created = await events_service.create_event(moderator)

	assert created.leader_id == moderator.id
	assert created.type == settings.event_type
	assert created.start_time is None
	assert created.end_time is None
	assert "100" in repo.users

	other_mod = Actor(id="101", roles=("role-moderator",))
	with pytest.raises(ConflictError) as exc:
		await events_service.create_event(other_mod)

	assert exc.value.detail == "active_event_exists"
	assert exc.value.message == "There is already an active event!"
	assert repo.open_event_count() == 1
	# The declined moderator's profile is not written.
	assert "101" not in repo.users


@pytest.mark.asyncio
async def test_create_event_conflict_from_store_constraint(events_service, repo, moderator):
	"""A concurrent creator that passed the pre-read is stopped by the open-event index."""
	await events_service.create_event(moderator)

	async def _stale_check() -> bool:
		return False

	events_service.check_active_event = _stale_check  # type: ignore[method-assign]

	with pytest.raises(ConflictError):
		await events_service.create_event(Actor(id="101"))
	assert repo.open_event_count() == 1


@pytest.mark.asyncio
async def test_create_event_with_start_sets_start_time(events_service, moderator):
	created = await events_service.create_event(moderator, start=True)

	assert created.start_time is not None
	assert created.message == "Created and started the outreach event!"


@pytest.mark.asyncio
async def test_start_event_transitions_and_rejects_second_start(events_service, moderator):
	await events_service.create_event(moderator)

	started = await events_service.start_event(moderator)
	assert started.start_time is not None
	assert started.end_time is None

	with pytest.raises(ConflictError) as exc:
		await events_service.start_event(moderator)
	assert exc.value.detail == "event_already_started"


@pytest.mark.asyncio
async def test_start_and_end_require_an_active_event(events_service, moderator):
	with pytest.raises(NoActiveEventError):
		await events_service.start_event(moderator)
	with pytest.raises(NoActiveEventError):
		await events_service.end_event(moderator)
	# NoActiveEventError is reported as a missing resource.
	assert issubclass(NoActiveEventError, NotFoundError)


@pytest.mark.asyncio
async def test_end_event_allows_a_new_event(events_service, repo, moderator):
	first = await events_service.create_event(moderator)

	ended = await events_service.end_event(moderator)
	assert ended.id == first.id
	assert ended.end_time is not None
	assert await events_service.get_current_event() is None
	assert await events_service.check_active_event() is False

	second = await events_service.create_event(Actor(id="101"))
	assert second.id != first.id
	assert repo.open_event_count() == 1


@pytest.mark.asyncio
async def test_end_event_without_start(events_service, moderator):
	await events_service.create_event(moderator)

	ended = await events_service.end_event(moderator)

	assert ended.start_time is None
	assert ended.end_time is not None


@pytest.mark.asyncio
async def test_event_summary_totals_group_statistics(events_service, ledger, repo, moderator, coordinator):
	await events_service.create_event(moderator)
	first = await ledger.create_group(moderator, _user("1"))
	second = await ledger.create_group(moderator, _user("2"))
	await ledger.update_stats(coordinator, {"vegan": 2, "thanked": 5}, group_role_id=first.group.role_id)
	await ledger.update_stats(coordinator, {"vegan": 1}, group_role_id=second.group.role_id)

	summary = await events_service.event_summary()

	assert [group.name for group in summary.groups] == ["Group 1", "Group 2"]
	assert summary.totals["vegan"] == 3
	assert summary.totals["thanked"] == 5
	assert summary.totals["educated"] == 0


def _user(user_id: str) -> PlatformUser:
	return PlatformUser(id=user_id, display_name=f"user{user_id}")


@pytest.mark.asyncio
async def test_seed_event_types_is_idempotent(repo):
	await seed_event_types(repo)
	await seed_event_types(repo)

	assert repo.event_types == {settings.event_type}
