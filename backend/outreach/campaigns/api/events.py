"""Event lifecycle API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from outreach.campaigns.api._errors import to_http_error
from outreach.campaigns.domain.events_service import EventsService
from outreach.campaigns.domain.exceptions import OutreachError
from outreach.campaigns.schemas import dto
from outreach.infra.auth import Actor, get_current_actor, get_moderator

router = APIRouter(tags=["outreach:events"])
_service = EventsService()


@router.post("/events", response_model=dto.EventResponse, status_code=201)
async def create_event_endpoint(
	payload: dto.EventCreateRequest | None = None,
	actor: Actor = Depends(get_moderator),
) -> dto.EventResponse:
	try:
		return await _service.create_event(actor, start=payload.start if payload else False)
	except OutreachError as exc:
		raise to_http_error(exc) from exc


@router.get("/events/current", response_model=dto.EventSummaryResponse)
async def current_event_endpoint(
	actor: Actor = Depends(get_current_actor),
) -> dto.EventSummaryResponse:
	try:
		return await _service.event_summary()
	except OutreachError as exc:
		raise to_http_error(exc) from exc


@router.post("/events/current/start", response_model=dto.EventResponse)
async def start_event_endpoint(actor: Actor = Depends(get_moderator)) -> dto.EventResponse:
	try:
		return await _service.start_event(actor)
	except OutreachError as exc:
		raise to_http_error(exc) from exc


@router.post("/events/current/end", response_model=dto.EventResponse)
async def end_event_endpoint(actor: Actor = Depends(get_moderator)) -> dto.EventResponse:
	try:
		return await _service.end_event(actor)
	except OutreachError as exc:
		raise to_http_error(exc) from exc
