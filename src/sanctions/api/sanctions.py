"""Sanction API endpoints: creation, lookup, page views, links, client config."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from sanctions.api.deps import LifecycleDep, RepoDep, SettingsDep
from sanctions.auth.deps import OptionalActor
from sanctions.core import affordances
from sanctions.core.expiration import is_expired, time_remaining
from sanctions.core.identifier import Identifier
from sanctions.core.lifecycle import view_page
from sanctions.core.messages import client_config
from sanctions.core.topics import open_sanction, require_sanction
from sanctions.core.vote_right import can_vote
from sanctions.db.repository import to_sanction
from sanctions.exceptions import InvalidIdentifier, UnresolvedSanction
from sanctions.models.sanction import Sanction, SanctionType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sanctions", tags=["sanctions"])


# --- Request Models ---


class CreateSanctionRequest(BaseModel):
    topic: str
    subject: str
    sanction_type: SanctionType


def _sanction_data(sanction: Sanction) -> dict:
    data = sanction.model_dump(mode="json")
    data["status"] = sanction.status
    data["is_expired"] = is_expired(sanction)
    data["seconds_remaining"] = int(time_remaining(sanction).total_seconds())
    return data


# --- Endpoints ---


@router.post("", status_code=201)
async def api_create_sanction(
    body: CreateSanctionRequest,
    repo: RepoDep,
    settings: SettingsDep,
    actor: OptionalActor,
) -> dict:
    """Bind a newly opened proposal topic to a sanction. Requires vote-right."""
    if not can_vote(actor, settings):
        raise HTTPException(status_code=403, detail="Vote-right required to propose a sanction")

    try:
        identifier = Identifier.from_text(body.topic)
    except InvalidIdentifier as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    try:
        sanction = await open_sanction(
            repo,
            identifier,
            subject=body.subject,
            sanction_type=body.sanction_type,
            author=actor.name if actor else "",
            settings=settings,
        )
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return {"data": _sanction_data(sanction)}


@router.get("")
async def api_list_open_sanctions(repo: RepoDep) -> dict:
    """Sanctions still open for voting, earliest deadline first. Backs the listing page."""
    sanctions = [to_sanction(row) for row in await repo.get_open_sanctions()]
    return {"data": [_sanction_data(s) for s in sanctions if not is_expired(s)]}


@router.get("/config")
async def api_client_config(settings: SettingsDep) -> dict:
    """Template titles and limits the front-end needs, in the content language."""
    return {"data": client_config(settings)}


@router.get("/links")
async def api_tool_links(
    settings: SettingsDep,
    actor: OptionalActor,
    user: str,
    new_rev: int | None = None,
    old_rev: int | None = None,
    rev: int | None = None,
) -> dict:
    """Sanction links the skin may show around *user*."""
    candidates = [
        affordances.user_tool_link(actor, user, settings),
        affordances.toolbox_link(user, settings),
        affordances.contributions_link(user, settings),
    ]
    if new_rev is not None:
        candidates.append(affordances.diff_link(actor, user, new_rev, old_rev, settings))
    if rev is not None:
        candidates.append(affordances.history_link(actor, user, rev, settings))
    return {"data": [link.model_dump() for link in candidates if link is not None]}


@router.get("/pages/{title:path}", response_model=None)
async def api_view_page(
    title: str,
    ctx: LifecycleDep,
    actor: OptionalActor,
    redirect: str | None = None,
) -> dict | RedirectResponse:
    """Evaluate a page view: redirect the board, refresh or expire a topic's sanction."""
    view = await view_page(ctx, title, actor, redirect=redirect)
    if view.redirect_to is not None:
        return RedirectResponse(url=view.redirect_to, status_code=302)
    return {
        "data": {
            "kind": view.kind,
            "modules": view.modules,
            "sanction": _sanction_data(view.sanction) if view.sanction else None,
            "show_vote_ui": view.show_vote_ui,
            "refreshed": view.refreshed,
        }
    }


@router.get("/subjects/{subject}")
async def api_sanctions_for_subject(subject: str, repo: RepoDep) -> dict:
    """All sanctions proposed against a user, newest first."""
    rows = await repo.get_sanctions_for_subject(subject)
    return {"data": [_sanction_data(to_sanction(row)) for row in rows]}


@router.get("/{identifier}")
async def api_get_sanction(identifier: str, repo: RepoDep) -> dict:
    """Look up a sanction by its topic identifier. Read-only.

    Errors:
        422: malformed identifier
        404: no sanction for the topic
    """
    try:
        parsed = Identifier.from_text(identifier)
    except InvalidIdentifier as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        sanction = await require_sanction(repo, parsed)
    except UnresolvedSanction as exc:
        raise HTTPException(status_code=404, detail="Sanction not found") from exc
    return {"data": _sanction_data(sanction)}
