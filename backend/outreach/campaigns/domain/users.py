"""Profile bookkeeping for platform users referenced by the ledger."""

from __future__ import annotations

from outreach.campaigns.domain import models
from outreach.infra.auth import Actor


def actor_profile(actor: Actor) -> models.PlatformUser:
	return models.PlatformUser(id=actor.id, display_name=actor.display_name)


def label(user: models.PlatformUser) -> str:
	return user.display_name or user.id


async def ensure_user_record(repo, user: models.PlatformUser) -> None:
	"""Upsert the profile row; events, groups and memberships reference it by foreign key."""
	await repo.upsert_user(user)
