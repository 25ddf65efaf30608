from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from outreach.campaigns.domain import models, policies
from outreach.campaigns.domain.exceptions import (
	ConflictError,
	NoActiveEventError,
	NotAuthorizedError,
	ValidationError,
)
from outreach.infra.auth import Actor
from outreach.settings import _split_ids, settings


def _event(**overrides) -> models.Event:
	payload = {
		"id": uuid4(),
		"leader_id": "100",
		"type": "Discord Outreach",
		"created_at": datetime.now(timezone.utc),
	}
	payload.update(overrides)
	return models.Event(**payload)


def _group(event_id, leader_id="1") -> models.Group:
	now = datetime.now(timezone.utc)
	return models.Group(
		id=uuid4(),
		event_id=event_id,
		leader_id=leader_id,
		sequence=2,
		role_id="role-group-2",
		created_at=now,
		updated_at=now,
	)


def test_coordinator_policy_matches_any_configured_role():
	policy = policies.CoordinatorPolicy.from_role_ids(["a", "b"])

	assert policy(Actor(id="1", roles=("x", "b")))
	assert not policy(Actor(id="1", roles=("x",)))
	assert not policies.CoordinatorPolicy.from_role_ids([])(Actor(id="1", roles=("x",)))


def test_default_coordinator_policy_reads_settings():
	policy = policies.default_coordinator_policy()

	assert policy.role_ids == frozenset(settings.coordinator_role_ids)


def test_require_active_event_rejects_missing_and_closed():
	with pytest.raises(NoActiveEventError):
		policies.require_active_event(None)
	with pytest.raises(NoActiveEventError):
		policies.require_active_event(_event(end_time=datetime.now(timezone.utc)))

	event = _event()
	assert policies.require_active_event(event) is event


def test_roster_mutation_allows_leader_or_coordinator():
	group = _group(uuid4(), leader_id="1")
	is_coordinator = policies.CoordinatorPolicy.from_role_ids({"coord"})

	policies.assert_can_mutate_roster(group, Actor(id="1"), is_coordinator=is_coordinator)
	policies.assert_can_mutate_roster(group, Actor(id="9", roles=("coord",)), is_coordinator=is_coordinator)

	with pytest.raises(NotAuthorizedError) as exc:
		policies.assert_can_mutate_roster(group, Actor(id="9"), is_coordinator=is_coordinator)
	assert exc.value.message == "You are not the leader for Group 2"


def test_group_must_belong_to_the_open_event():
	event = _event()
	policies.ensure_group_in_event(_group(event.id), event)

	with pytest.raises(ConflictError) as exc:
		policies.ensure_group_in_event(_group(uuid4()), event)
	assert exc.value.detail == "group_event_closed"

	with pytest.raises(ConflictError):
		policies.ensure_group_in_event(_group(event.id), None)


def test_ensure_stats_valid_drops_omitted_values():
	assert policies.ensure_stats_valid({"vegan": 0, "thanked": None}) == {"vegan": 0}


@pytest.mark.parametrize(
	("values", "code"),
	[
		({"anti_vegan": 1}, "unknown_statistic"),
		({"vegan": None}, "no_statistics"),
		({"educated": -2}, "negative_statistic"),
	],
)
def test_ensure_stats_valid_rejects(values, code):
	with pytest.raises(ValidationError) as exc:
		policies.ensure_stats_valid(values)
	assert exc.value.detail == code


@pytest.mark.parametrize(
	("raw", "expected"),
	[
		(None, ()),
		("", ()),
		("1, 2,,3", ("1", "2", "3")),
		('["10", "11"]', ("10", "11")),
		(["a", " "], ("a",)),
	],
)
def test_split_ids_accepts_env_formats(raw, expected):
	assert _split_ids(raw) == expected
