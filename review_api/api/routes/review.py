"""Review route group: draft reviews kept in the author's session."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from review_api.api.deps import CurrentUser, SessionDep
from review_api.schemas.review import ReviewDraft, ReviewDraftList

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Review"])

DRAFTS_KEY = "review_drafts"


@router.get("", response_model=ReviewDraftList)
async def list_drafts(user: CurrentUser, session: SessionDep) -> ReviewDraftList:
    drafts = session.get(DRAFTS_KEY, [])
    return ReviewDraftList(reviews=[ReviewDraft(**draft) for draft in drafts])


@router.post("", response_model=ReviewDraft, status_code=201)
async def add_draft(draft: ReviewDraft, user: CurrentUser, session: SessionDep) -> ReviewDraft:
    session.setdefault(DRAFTS_KEY, []).append(draft.model_dump())
    logger.info(
        "review.draft_added",
        extra={"draft_count": len(session[DRAFTS_KEY])},
    )
    return draft
