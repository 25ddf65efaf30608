"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from outreach.api import ops
from outreach.api.errors import install_error_handlers
from outreach.campaigns.api import router as campaigns_router
from outreach.campaigns.domain.repo import CampaignsRepository
from outreach.campaigns.platform import roles as platform_roles
from outreach.infra import postgres
from outreach.obs import init as obs_init
from outreach.settings import settings

_LOG = logging.getLogger(__name__)


async def seed_event_types(repository: CampaignsRepository | None = None) -> None:
	"""Ensure the configured event type exists before any event references it."""
	repo = repository or CampaignsRepository()
	if await repo.seed_event_type_if_absent(settings.event_type):
		_LOG.info("outreach_event_type_seeded", extra={"event_type": settings.event_type})


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	await seed_event_types()
	try:
		yield
	finally:
		await platform_roles.close_client()
		await postgres.close_pool()


app = FastAPI(title="Outreach Coordinator", lifespan=lifespan)

install_error_handlers(app)
obs_init(app)

app.include_router(campaigns_router)
app.include_router(ops.router, tags=["ops"])
