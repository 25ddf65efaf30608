"""Caller identity for the command surface.

The chat bot front end authenticates with a shared bearer token and forwards
the identity of the person who ran the command in ``X-Actor-*`` headers.
Outside development the bearer token is mandatory.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from outreach.settings import settings


@dataclass(slots=True)
class Actor:
	id: str
	display_name: Optional[str] = None
	roles: Tuple[str, ...] = ()

	def has_any_role(self, roles: Iterable[str]) -> bool:
		return any(role in self.roles for role in roles)


_bearer_scheme = HTTPBearer(auto_error=False)


def _parse_roles(raw: Optional[str]) -> Tuple[str, ...]:
	if not raw:
		return ()
	return tuple(part.strip() for part in raw.split(",") if part.strip())


def _verify_service_token(credentials: Optional[HTTPAuthorizationCredentials]) -> None:
	expected = settings.service_token
	if not expected:
		if settings.is_dev():
			return
		# Fail closed: outside development a token must be configured.
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="service_token_not_configured")
	if credentials is None or credentials.scheme.lower() != "bearer":
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	if not hmac.compare_digest(credentials.credentials, expected):
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


async def get_current_actor(
	x_actor_id: Optional[str] = Header(default=None, alias="X-Actor-Id"),
	x_actor_name: Optional[str] = Header(default=None, alias="X-Actor-Name"),
	x_actor_roles: Optional[str] = Header(default=None, alias="X-Actor-Roles"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Actor:
	_verify_service_token(credentials)
	actor_id = (x_actor_id or "").strip()
	if not actor_id:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_actor")
	return Actor(id=actor_id, display_name=x_actor_name, roles=_parse_roles(x_actor_roles))


async def get_moderator(actor: Actor = Depends(get_current_actor)) -> Actor:
	"""Event lifecycle commands are moderator only."""
	if actor.has_any_role(settings.moderator_role_ids):
		return actor
	raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="moderator_only")


async def get_organiser(actor: Actor = Depends(get_current_actor)) -> Actor:
	"""Group creation is open to moderators and outreach coordinators."""
	if actor.has_any_role(settings.moderator_role_ids) or actor.has_any_role(settings.coordinator_role_ids):
		return actor
	raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="organiser_only")
