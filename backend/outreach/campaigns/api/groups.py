"""Group and roster API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from outreach.campaigns.api._errors import to_http_error
from outreach.campaigns.domain.exceptions import OutreachError
from outreach.campaigns.domain.ledger_service import LedgerService
from outreach.campaigns.schemas import dto
from outreach.infra.auth import Actor, get_current_actor, get_organiser

router = APIRouter(tags=["outreach:groups"])
_service = LedgerService()


@router.post("/groups", response_model=dto.GroupCreateResponse, status_code=201)
async def create_group_endpoint(
	payload: dto.GroupCreateRequest,
	actor: Actor = Depends(get_organiser),
) -> dto.GroupCreateResponse:
	try:
		return await _service.create_group(actor, payload.leader.to_model())
	except OutreachError as exc:
		raise to_http_error(exc) from exc


@router.post("/groups/members", response_model=dto.MemberAddResponse, status_code=201)
async def add_member_endpoint(
	payload: dto.GroupMemberAddRequest,
	actor: Actor = Depends(get_current_actor),
) -> dto.MemberAddResponse:
	try:
		return await _service.add_member_to_group(
			actor,
			payload.user.to_model(),
			group_role_id=payload.group_role_id,
		)
	except OutreachError as exc:
		raise to_http_error(exc) from exc


@router.post("/groups/members/sync", response_model=dto.MemberSyncResponse)
async def sync_member_endpoint(
	payload: dto.GroupMemberSyncRequest,
	actor: Actor = Depends(get_current_actor),
) -> dto.MemberSyncResponse:
	try:
		return await _service.resync_member(actor, payload.user_id, group_role_id=payload.group_role_id)
	except OutreachError as exc:
		raise to_http_error(exc) from exc


@router.patch("/groups/stats", response_model=dto.GroupStatsResponse)
async def update_stats_endpoint(
	payload: dto.GroupStatsUpdateRequest,
	actor: Actor = Depends(get_current_actor),
) -> dto.GroupStatsResponse:
	try:
		return await _service.update_stats(actor, payload.stats(), group_role_id=payload.group_role_id)
	except OutreachError as exc:
		raise to_http_error(exc) from exc
