"""Custom exceptions for outreach campaign services."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class OutreachError(Exception):
	"""Base class for declined outreach actions.

	``detail`` is a stable machine-readable code; ``message`` is the text shown
	to the person who ran the command.
	"""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "outreach_error"
	message: str = "That action could not be completed."

	def __init__(self, detail: str | None = None, *, message: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail
		if message:
			self.message = message


class NotFoundError(OutreachError):
	"""Raised when a referenced event, group, role or member does not exist."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"
	message = "Could not find what you were looking for."


class NoActiveEventError(NotFoundError):
	detail = "no_active_event"
	message = "There is no current event!"


class ConflictError(OutreachError):
	"""Raised when the requested state already holds (e.g. an event is active)."""

	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"
	message = "That conflicts with the current state."


class AlreadyMemberError(ConflictError):
	detail = "already_member"
	message = "That user is already in this group!"


class NotAuthorizedError(OutreachError):
	"""Raised when the acting user is neither the group's leader nor a coordinator."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "not_authorized"
	message = "You are not allowed to do that."


class ValidationError(OutreachError):
	status_code = _HTTP_422
	detail = "validation_error"
	message = "The values provided are not valid."


class ExternalSyncError(OutreachError):
	"""Raised when the chat platform could not mirror a ledger change."""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "external_sync_failed"
	message = "The chat platform did not accept the role change."
