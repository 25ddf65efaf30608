"""Domain models for outreach campaign entities."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

STAT_FIELDS = ("vegan", "considered", "thanked", "documentary", "educated")


class PlatformUser(BaseModel):
	"""A chat platform user as resolved by the command layer."""

	id: str
	display_name: Optional[str] = None


class Event(BaseModel):
	"""An outreach campaign; open while ``end_time`` is null."""

	id: UUID
	leader_id: str
	type: str
	start_time: Optional[datetime] = None
	end_time: Optional[datetime] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def is_active(self) -> bool:
		return self.end_time is None

	@property
	def is_started(self) -> bool:
		return self.start_time is not None


class Group(BaseModel):
	"""A leader-led team within an event together with its statistics."""

	id: UUID
	event_id: UUID
	leader_id: str
	sequence: int
	role_id: Optional[str] = None
	vegan: int = 0
	considered: int = 0
	thanked: int = 0
	documentary: int = 0
	educated: int = 0
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def display_name(self) -> str:
		return f"Group {self.sequence}"


class GroupMember(BaseModel):
	group_id: UUID
	user_id: str
	joined_at: datetime

	model_config = ConfigDict(from_attributes=True)
