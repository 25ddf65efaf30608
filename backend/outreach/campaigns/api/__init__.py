"""FastAPI routers for the outreach campaigns domain."""

from __future__ import annotations

from fastapi import APIRouter

from outreach.campaigns.api import events, groups

router = APIRouter(prefix="/api/outreach/v1")

router.include_router(events.router)
router.include_router(groups.router)
