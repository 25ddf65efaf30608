"""Group ledger: group creation, roster changes and statistics.

Ledger writes commit first and platform roles are mirrored afterwards. A
failed grant is reported back as ``role_synced=False`` and never undoes the
membership row; the roster in the database is the source of truth and the
grant can be retried with :meth:`LedgerService.resync_member`.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional
from uuid import UUID

from outreach.campaigns.domain import models, policies, repo as repo_module
from outreach.campaigns.domain.exceptions import (
	AlreadyMemberError,
	ExternalSyncError,
	NotFoundError,
)
from outreach.campaigns.domain.users import ensure_user_record, label
from outreach.campaigns.platform import roles as roles_module
from outreach.campaigns.schemas import dto
from outreach.infra.auth import Actor
from outreach.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class LedgerService:
	"""Implements group and membership operations for the current event."""

	def __init__(
		self,
		repository: repo_module.CampaignsRepository | None = None,
		role_sync: roles_module.RoleSync | None = None,
		is_coordinator: policies.CoordinatorPredicate | None = None,
	) -> None:
		self.repo = repository or repo_module.CampaignsRepository()
		self.role_sync = role_sync or roles_module.build_role_sync()
		self.is_coordinator = is_coordinator or policies.default_coordinator_policy()

	# ------------------------------------------------------------------
	# Lookups

	async def resolve_group_by_role(self, role_id: str) -> models.Group | None:
		return await self.repo.find_group_by_role(role_id)

	async def resolve_group_by_leader(self, leader_id: str) -> models.Group | None:
		"""Only groups of the open event count; past events never match."""
		event = await self.repo.find_active_event()
		if event is None:
			return None
		return await self.repo.find_group_by_leader_for_event(leader_id, event.id)

	async def is_member(self, group_id: UUID, user_id: str) -> bool:
		return await self.repo.is_group_member(group_id, user_id)

	# ------------------------------------------------------------------
	# Primitives

	async def add_member(self, group_id: UUID, user_id: str) -> models.GroupMember:
		"""Insert a membership row without re-checking authorization.

		The ``(group_id, user_id)`` key decides races between concurrent adds; a
		violation surfaces as :class:`AlreadyMemberError` just like the pre-check.
		"""
		if await self.is_member(group_id, user_id):
			raise AlreadyMemberError()
		return await self.repo.add_group_member(group_id, user_id)

	async def _mirror(self, user_id: str, role_id: Optional[str], *, operation: str) -> bool:
		if role_id is None:
			granted = False
		else:
			try:
				granted = await self.role_sync.grant_role(user_id, role_id)
			except ExternalSyncError:
				granted = False
		if not granted:
			obs_metrics.inc_role_sync_failure(operation)
			_LOG.warning(
				"outreach_role_sync_incomplete",
				extra={"operation": operation, "user_id": user_id, "role_id": role_id},
			)
		return granted

	async def _resolve_target_group(self, actor: Actor, group_role_id: Optional[str]) -> models.Group:
		if group_role_id is None:
			return policies.require_led_group(await self.resolve_group_by_leader(actor.id))
		group = await self.resolve_group_by_role(group_role_id)
		if group is None:
			raise NotFoundError("group_not_found", message=f"Could not find the group for role {group_role_id}")
		policies.assert_can_mutate_roster(group, actor, is_coordinator=self.is_coordinator)
		policies.ensure_group_in_event(group, await self.repo.find_active_event())
		return group

	# ------------------------------------------------------------------
	# Commands

	async def create_group(self, actor: Actor, leader: models.PlatformUser) -> dto.GroupCreateResponse:
		event = policies.require_active_event(await self.repo.find_active_event())
		# Display ordinal only; concurrent creations may share a number.
		sequence = await self.repo.count_groups_for_event(event.id) + 1
		await ensure_user_record(self.repo, leader)
		# The binding needs the platform role id, so the role comes first. Failure
		# here leaves no group rows behind.
		role_id = await self.role_sync.create_role_for_group(sequence)
		try:
			group = await self.repo.create_group(
				event_id=event.id,
				leader_id=leader.id,
				sequence=sequence,
				role_id=role_id,
			)
		except Exception:
			_LOG.warning("outreach_group_role_orphaned", extra={"role_id": role_id, "sequence": sequence})
			raise
		obs_metrics.inc_group_created()
		_LOG.info(
			"outreach_group_created",
			extra={"group_id": str(group.id), "event_id": str(event.id), "sequence": sequence, "actor_id": actor.id},
		)
		synced = await self._mirror(leader.id, role_id, operation="group_create")
		if synced:
			message = f"Created a group with the leader being {label(leader)}"
		else:
			message = f"Created a group with the leader being {label(leader)}, however could not give the role."
		return dto.GroupCreateResponse(
			group=dto.GroupResponse.from_model(group),
			role_synced=synced,
			message=message,
		)

	async def add_member_to_group(
		self,
		actor: Actor,
		user: models.PlatformUser,
		*,
		group_role_id: Optional[str] = None,
	) -> dto.MemberAddResponse:
		group = await self._resolve_target_group(actor, group_role_id)
		await ensure_user_record(self.repo, user)
		try:
			await self.add_member(group.id, user.id)
		except AlreadyMemberError as exc:
			raise AlreadyMemberError(message=f"{label(user)} is already in this group!") from exc
		obs_metrics.inc_member_added()
		_LOG.info(
			"outreach_member_added",
			extra={"group_id": str(group.id), "user_id": user.id, "actor_id": actor.id},
		)
		synced = await self._mirror(user.id, group.role_id, operation="member_add")
		if synced:
			message = f"Added {label(user)} to the group!"
		else:
			message = f"Added {label(user)} to the group, however could not give the role."
		return dto.MemberAddResponse(
			group_id=group.id,
			user_id=user.id,
			role_id=group.role_id,
			role_synced=synced,
			message=message,
		)

	async def resync_member(
		self,
		actor: Actor,
		user_id: str,
		*,
		group_role_id: Optional[str] = None,
	) -> dto.MemberSyncResponse:
		"""Retry the platform grant for someone already on the roster."""
		group = await self._resolve_target_group(actor, group_role_id)
		if not await self.is_member(group.id, user_id):
			raise NotFoundError("member_not_found", message=f"{user_id} is not in {group.display_name}")
		if group.role_id is None or not await self._mirror(user_id, group.role_id, operation="resync"):
			raise ExternalSyncError(message="Could not give the role, please try again later.")
		return dto.MemberSyncResponse(
			group_id=group.id,
			user_id=user_id,
			role_id=group.role_id,
			message=f"Gave the role for {group.display_name} to {user_id}",
		)

	async def update_stats(
		self,
		actor: Actor,
		stats: Mapping[str, Optional[int]],
		*,
		group_role_id: Optional[str] = None,
	) -> dto.GroupStatsResponse:
		values = policies.ensure_stats_valid(stats)
		group = await self._resolve_target_group(actor, group_role_id)
		updated = await self.repo.update_group_stats(group.id, values)
		if updated is None:
			raise NotFoundError("group_not_found")
		obs_metrics.inc_stats_updated()
		_LOG.info("outreach_stats_updated", extra={"group_id": str(group.id), "fields": sorted(values)})
		return dto.GroupStatsResponse(
			group=dto.GroupResponse.from_model(updated),
			message=f"Updated the statistics for {updated.display_name}",
		)
