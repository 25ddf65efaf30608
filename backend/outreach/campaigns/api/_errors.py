"""Error translation helpers for the outreach API."""

from __future__ import annotations

from fastapi import HTTPException

from outreach.campaigns.domain import exceptions
from outreach.obs import metrics as obs_metrics


def to_http_error(exc: exceptions.OutreachError) -> HTTPException:
	"""Translate a declined action into an HTTP error carrying the user-facing text."""
	obs_metrics.inc_declined(exc.detail)
	return HTTPException(
		status_code=exc.status_code,
		detail={"code": exc.detail, "message": exc.message},
	)
