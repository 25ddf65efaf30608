"""Authorization and invariant policies for outreach operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from outreach.campaigns.domain import models
from outreach.campaigns.domain.exceptions import (
	ConflictError,
	NoActiveEventError,
	NotAuthorizedError,
	ValidationError,
)
from outreach.infra.auth import Actor
from outreach.settings import settings

CoordinatorPredicate = Callable[[Actor], bool]


@dataclass(frozen=True, slots=True)
class CoordinatorPolicy:
	"""Grants the coordinator capability to holders of any of ``role_ids``."""

	role_ids: frozenset[str]

	@classmethod
	def from_role_ids(cls, role_ids: Iterable[str]) -> "CoordinatorPolicy":
		return cls(role_ids=frozenset(role_ids))

	def __call__(self, actor: Actor) -> bool:
		return actor.has_any_role(self.role_ids)


def default_coordinator_policy() -> CoordinatorPolicy:
	return CoordinatorPolicy.from_role_ids(settings.coordinator_role_ids)


def require_active_event(event: models.Event | None) -> models.Event:
	if event is None or not event.is_active:
		raise NoActiveEventError()
	return event


def ensure_no_active_event(active: bool) -> None:
	if active:
		raise ConflictError("active_event_exists", message="There is already an active event!")


def is_group_leader(group: models.Group, user_id: str) -> bool:
	return group.leader_id == user_id


def assert_can_mutate_roster(
	group: models.Group,
	actor: Actor,
	*,
	is_coordinator: CoordinatorPredicate,
) -> None:
	"""Only the group's leader or a coordinator may change its roster or stats."""
	if is_group_leader(group, actor.id) or is_coordinator(actor):
		return
	raise NotAuthorizedError(
		"not_group_leader",
		message=f"You are not the leader for {group.display_name}",
	)


def require_led_group(group: models.Group | None) -> models.Group:
	if group is None:
		raise NotAuthorizedError("not_group_leader", message="You're not a group leader!")
	return group


def ensure_group_in_event(group: models.Group, event: models.Event | None) -> None:
	if event is None or group.event_id != event.id:
		raise ConflictError(
			"group_event_closed",
			message=f"{group.display_name} belongs to an event that has ended.",
		)


def ensure_stats_valid(values: Mapping[str, int | None]) -> dict[str, int]:
	"""Drop omitted statistics and reject unknown or negative ones."""
	unknown = set(values) - set(models.STAT_FIELDS)
	if unknown:
		raise ValidationError("unknown_statistic", message=f"Unknown statistics: {', '.join(sorted(unknown))}")
	provided = {name: value for name, value in values.items() if value is not None}
	if not provided:
		raise ValidationError("no_statistics", message="Provide at least one statistic to update.")
	for name, value in provided.items():
		if value < 0:
			raise ValidationError("negative_statistic", message=f"{name} cannot be negative.")
	return provided
