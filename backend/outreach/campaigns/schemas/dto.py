"""Pydantic schemas for the outreach command surface."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from outreach.campaigns.domain import models


class PlatformUserPayload(BaseModel):
	id: str = Field(..., min_length=1, max_length=64)
	display_name: Optional[str] = Field(default=None, max_length=100)

	def to_model(self) -> models.PlatformUser:
		return models.PlatformUser(id=self.id, display_name=self.display_name)


class EventCreateRequest(BaseModel):
	start: bool = False


class GroupCreateRequest(BaseModel):
	leader: PlatformUserPayload


class GroupMemberAddRequest(BaseModel):
	user: PlatformUserPayload
	group_role_id: Optional[str] = Field(default=None, max_length=64)


class GroupMemberSyncRequest(BaseModel):
	user_id: str = Field(..., min_length=1, max_length=64)
	group_role_id: Optional[str] = Field(default=None, max_length=64)


class GroupStatsUpdateRequest(BaseModel):
	group_role_id: Optional[str] = Field(default=None, max_length=64)
	vegan: Optional[int] = Field(default=None, ge=0)
	considered: Optional[int] = Field(default=None, ge=0)
	thanked: Optional[int] = Field(default=None, ge=0)
	documentary: Optional[int] = Field(default=None, ge=0)
	educated: Optional[int] = Field(default=None, ge=0)

	def stats(self) -> Dict[str, Optional[int]]:
		return {name: getattr(self, name) for name in models.STAT_FIELDS}


class EventResponse(BaseModel):
	id: UUID
	leader_id: str
	type: str
	start_time: Optional[datetime] = None
	end_time: Optional[datetime] = None
	created_at: datetime
	message: str = ""

	@classmethod
	def from_model(cls, event: models.Event, *, message: str = "") -> "EventResponse":
		return cls(**event.model_dump(), message=message)


class GroupResponse(BaseModel):
	id: UUID
	event_id: UUID
	leader_id: str
	sequence: int
	name: str
	role_id: Optional[str] = None
	vegan: int = 0
	considered: int = 0
	thanked: int = 0
	documentary: int = 0
	educated: int = 0

	@classmethod
	def from_model(cls, group: models.Group) -> "GroupResponse":
		payload = group.model_dump(exclude={"created_at", "updated_at"})
		return cls(**payload, name=group.display_name)


class GroupCreateResponse(BaseModel):
	group: GroupResponse
	role_synced: bool
	message: str


class MemberAddResponse(BaseModel):
	group_id: UUID
	user_id: str
	role_id: Optional[str] = None
	role_synced: bool
	message: str


class MemberSyncResponse(BaseModel):
	group_id: UUID
	user_id: str
	role_id: str
	message: str


class GroupStatsResponse(BaseModel):
	group: GroupResponse
	message: str


class EventSummaryResponse(BaseModel):
	event: EventResponse
	groups: List[GroupResponse]
	totals: Dict[str, int]
