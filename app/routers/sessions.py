"""
Quiz session endpoints.

A client opens a session on a pack, posts the child's taps and polls the
snapshot. Timed transitions (autoplay, reveal, completion, exit) run on
the server; after the exit signal the session is gone (404).
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.deps import Services, get_services
from app.errors import NotFoundFailure, NotOwnedFailure

router = APIRouter(prefix="/sessions")


class StartSessionRequest(BaseModel):
    slug: str


class ChoiceRequest(BaseModel):
    index: int = Field(ge=0)


def _not_found(e: NotFoundFailure) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


@router.post("")
async def start_session(body: StartSessionRequest, services: Services = Depends(get_services)):
    try:
        session = await services.sessions.start(body.slug)
    except NotFoundFailure as e:
        raise _not_found(e)
    except NotOwnedFailure as e:
        raise HTTPException(status_code=403, detail=str(e))
    return session.snapshot()


@router.get("/{session_id}")
async def get_session(session_id: str, services: Services = Depends(get_services)):
    try:
        return services.sessions.get(session_id).snapshot()
    except NotFoundFailure as e:
        raise _not_found(e)


@router.post("/{session_id}/choice")
async def select_choice(
    session_id: str,
    body: ChoiceRequest,
    services: Services = Depends(get_services)
):
    """Lock in an answer; repeated taps on an answered task are ignored."""
    try:
        accepted = services.sessions.select(session_id, body.index)
        snapshot = services.sessions.get(session_id).snapshot()
    except NotFoundFailure as e:
        raise _not_found(e)
    return {"accepted": accepted, **snapshot}


@router.post("/{session_id}/replay")
async def replay_question(session_id: str, services: Services = Depends(get_services)):
    try:
        services.sessions.replay(session_id)
        return services.sessions.get(session_id).snapshot()
    except NotFoundFailure as e:
        raise _not_found(e)


@router.delete("/{session_id}")
async def close_session(session_id: str, services: Services = Depends(get_services)):
    try:
        services.sessions.close(session_id)
    except NotFoundFailure as e:
        raise _not_found(e)
    return {"status": "closed"}
