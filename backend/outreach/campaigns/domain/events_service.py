"""Lifecycle of outreach events: create, start, end.

At most one event is open (``end_time`` is null) at a time. The pre-read in
:meth:`EventsService.create_event` only gives a friendly answer in the common
case; the partial unique index on open events decides concurrent attempts and
the repository maps its violation to the same :class:`ConflictError`.
"""

from __future__ import annotations

import logging

from outreach.campaigns.domain import models, policies, repo as repo_module
from outreach.campaigns.domain.exceptions import ConflictError, NoActiveEventError
from outreach.campaigns.domain.users import actor_profile, ensure_user_record
from outreach.campaigns.schemas import dto
from outreach.infra.auth import Actor
from outreach.obs import metrics as obs_metrics
from outreach.settings import settings

_LOG = logging.getLogger(__name__)


class EventsService:
	"""Campaign state machine over the persisted events."""

	def __init__(self, repository: repo_module.CampaignsRepository | None = None) -> None:
		self.repo = repository or repo_module.CampaignsRepository()

	async def get_current_event(self) -> models.Event | None:
		return await self.repo.find_active_event()

	async def check_active_event(self) -> bool:
		return await self.get_current_event() is not None

	async def create_event(self, actor: Actor, *, start: bool = False) -> dto.EventResponse:
		policies.ensure_no_active_event(await self.check_active_event())
		await ensure_user_record(self.repo, actor_profile(actor))
		event = await self.repo.create_event(
			leader_id=actor.id,
			event_type=settings.event_type,
			started=start,
		)
		obs_metrics.inc_event_transition("created")
		if start:
			obs_metrics.inc_event_transition("started")
		_LOG.info("outreach_event_created", extra={"event_id": str(event.id), "started": start})
		message = "Created and started the outreach event!" if start else "Created the outreach event!"
		return dto.EventResponse.from_model(event, message=message)

	async def start_event(self, actor: Actor) -> dto.EventResponse:
		event = policies.require_active_event(await self.get_current_event())
		if event.is_started:
			raise ConflictError("event_already_started", message="The event has already started!")
		started = await self.repo.start_event(event.id)
		if started is None:
			# Ended or started by someone else between the read and the update.
			raise ConflictError("event_state_changed", message="The event changed, please try again.")
		obs_metrics.inc_event_transition("started")
		_LOG.info("outreach_event_started", extra={"event_id": str(event.id)})
		return dto.EventResponse.from_model(started, message="Started the outreach event!")

	async def end_event(self, actor: Actor) -> dto.EventResponse:
		event = policies.require_active_event(await self.get_current_event())
		ended = await self.repo.end_event(event.id)
		if ended is None:
			raise NoActiveEventError()
		obs_metrics.inc_event_transition("ended")
		_LOG.info("outreach_event_ended", extra={"event_id": str(event.id)})
		return dto.EventResponse.from_model(ended, message="Ended the outreach event!")

	async def event_summary(self) -> dto.EventSummaryResponse:
		event = policies.require_active_event(await self.get_current_event())
		groups = await self.repo.list_groups_for_event(event.id)
		totals = {name: sum(getattr(group, name) for group in groups) for name in models.STAT_FIELDS}
		return dto.EventSummaryResponse(
			event=dto.EventResponse.from_model(event),
			groups=[dto.GroupResponse.from_model(group) for group in groups],
			totals=totals,
		)
