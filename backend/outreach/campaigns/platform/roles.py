"""Mirror ledger changes onto chat platform roles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import uuid4

import httpx

from outreach.campaigns.domain.exceptions import ExternalSyncError
from outreach.settings import settings

_LOG = logging.getLogger(__name__)


class RoleSync(Protocol):
	"""Interface for the platform side of group membership."""

	async def create_role_for_group(self, sequence: int) -> str:
		...

	async def grant_role(self, user_id: str, role_id: str) -> bool:
		...


def group_role_name(sequence: int) -> str:
	return f"{settings.group_role_prefix} {sequence}"


@dataclass
class DiscordRoleSync(RoleSync):
	"""Role adapter backed by the Discord REST API."""

	http: httpx.AsyncClient
	guild_id: str
	request_timeout: float = 5.0

	async def create_role_for_group(self, sequence: int) -> str:
		name = group_role_name(sequence)
		try:
			response = await self.http.post(
				f"/guilds/{self.guild_id}/roles",
				json={"name": name, "mentionable": True},
				timeout=self.request_timeout,
			)
			response.raise_for_status()
		except httpx.HTTPError as exc:
			_LOG.warning("discord_role_create_failed", extra={"role_name": name}, exc_info=True)
			raise ExternalSyncError(
				"role_create_failed",
				message=f"Could not create the role for Group {sequence}.",
			) from exc
		try:
			payload = response.json()
		except ValueError:
			_LOG.warning("discord_role_create_unreadable", extra={"role_name": name, "status": response.status_code})
			payload = None
		role_id = payload.get("id") if isinstance(payload, dict) else None
		if not role_id:
			raise ExternalSyncError("role_create_failed", message=f"Could not create the role for Group {sequence}.")
		return str(role_id)

	async def grant_role(self, user_id: str, role_id: str) -> bool:
		try:
			response = await self.http.put(
				f"/guilds/{self.guild_id}/members/{user_id}/roles/{role_id}",
				timeout=self.request_timeout,
			)
		except httpx.HTTPError:
			_LOG.warning(
				"discord_role_grant_failed",
				extra={"user_id": user_id, "role_id": role_id},
				exc_info=True,
			)
			return False
		if response.status_code == httpx.codes.NOT_FOUND:
			_LOG.info("discord_member_not_found", extra={"user_id": user_id, "role_id": role_id})
			return False
		if response.is_error:
			_LOG.warning(
				"discord_role_grant_rejected",
				extra={"user_id": user_id, "role_id": role_id, "status": response.status_code},
			)
			return False
		return True


class NullRoleSync(RoleSync):
	"""Local development stand-in used when no bot token is configured."""

	async def create_role_for_group(self, sequence: int) -> str:
		return f"local-{uuid4().hex}"

	async def grant_role(self, user_id: str, role_id: str) -> bool:
		return True


class UnconfiguredRoleSync(RoleSync):
	"""Refuses to mirror anything; used outside dev when Discord is not configured.

	Group creation is declined with :class:`ExternalSyncError` instead of
	binding placeholder role ids, and grants report ``False``.
	"""

	async def create_role_for_group(self, sequence: int) -> str:
		raise ExternalSyncError(
			"role_sync_not_configured",
			message=f"Could not create the role for Group {sequence}, the chat platform is not configured.",
		)

	async def grant_role(self, user_id: str, role_id: str) -> bool:
		return False


_http_client: Optional[httpx.AsyncClient] = None


def _discord_client() -> httpx.AsyncClient:
	global _http_client
	if _http_client is None:
		_http_client = httpx.AsyncClient(
			base_url=settings.discord_api_base,
			headers={"Authorization": f"Bot {settings.discord_bot_token}"},
			timeout=settings.discord_timeout_seconds,
		)
	return _http_client


def build_role_sync() -> RoleSync:
	guild_id = settings.discord_guild_id
	if not settings.discord_bot_token or not guild_id:
		if settings.is_dev():
			_LOG.info("discord_role_sync_disabled")
			return NullRoleSync()
		_LOG.warning("discord_role_sync_not_configured", extra={"environment": settings.environment})
		return UnconfiguredRoleSync()
	return DiscordRoleSync(
		http=_discord_client(),
		guild_id=guild_id,
		request_timeout=settings.discord_timeout_seconds,
	)


async def close_client() -> None:
	global _http_client
	if _http_client is not None:
		await _http_client.aclose()
		_http_client = None
