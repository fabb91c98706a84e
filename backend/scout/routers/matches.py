# backend/scout/routers/matches.py
import logging
import uuid
from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends, Response

from ..exceptions import http_problem
from ..schemas import (
    DraftPatch,
    MatchCreate,
    MatchIdOut,
    MatchOut,
    MatchSummaryOut,
    PointIn,
    ServerIn,
    StatsOut,
    TeamUpdate,
)
from ..scoring import doubles
from ..services.analytics import aggregate, match_overview
from ..services.validation import (
    IncompletePointError,
    InvalidEnumError,
    ValidationError,
)
from ..store import MatchStore, get_store
from ..time_utils import isoformat_utc

logger = logging.getLogger(__name__)

# Resource-only prefix; versioning is added in main.py
router = APIRouter(prefix="/matches", tags=["matches"])


def _match_out(mid: str, state: Dict[str, Any]) -> MatchOut:
    return MatchOut(id=mid, **state, summary=doubles.summary(state))


async def _transition(
    store: MatchStore,
    mid: str,
    transition: Callable[..., Dict[str, Any]],
    *args: Any,
    **kwargs: Any,
) -> MatchOut:
    try:
        state = await store.update(mid, transition, *args, **kwargs)
    except IncompletePointError as exc:
        raise http_problem(
            status_code=400,
            detail=exc.detail,
            code="point_incomplete",
        )
    except InvalidEnumError as exc:
        raise http_problem(
            status_code=400,
            detail=exc.detail,
            code="point_invalid_value",
        )
    except ValidationError as exc:
        raise http_problem(
            status_code=400,
            detail=exc.detail,
            code="match_invalid",
        )
    except doubles.EmptyHistoryError as exc:
        raise http_problem(
            status_code=409,
            detail=exc.detail,
            code="match_history_empty",
        )
    return _match_out(mid, state)


@router.get("", response_model=list[MatchSummaryOut])
async def list_matches(store: MatchStore = Depends(get_store)):
    return match_overview(await store.list())


@router.post("", response_model=MatchIdOut)
async def create_match(body: MatchCreate, store: MatchStore = Depends(get_store)):
    mid = uuid.uuid4().hex
    state = doubles.init_state(
        {
            "court": body.court,
            "team1": body.team1.model_dump(),
            "team2": body.team2.model_dump(),
            "createdAt": isoformat_utc(body.createdAt) if body.createdAt else None,
        }
    )
    await store.put(mid, state)
    logger.info("Created match %s on court %s", mid, state["court"])
    return MatchIdOut(id=mid)


@router.get("/{mid}", response_model=MatchOut)
async def get_match(mid: str, store: MatchStore = Depends(get_store)):
    return _match_out(mid, await store.get(mid))


@router.delete("/{mid}", status_code=204)
async def delete_match(mid: str, store: MatchStore = Depends(get_store)):
    await store.delete(mid)
    logger.info("Deleted match %s", mid)
    return Response(status_code=204)


@router.patch("/{mid}/teams/{team}", response_model=MatchOut)
async def update_team(
    mid: str, team: int, body: TeamUpdate, store: MatchStore = Depends(get_store)
):
    return await _transition(
        store, mid, doubles.update_team, team, name=body.name, players=body.players
    )


@router.patch("/{mid}/draft", response_model=MatchOut)
async def update_draft(mid: str, body: DraftPatch, store: MatchStore = Depends(get_store)):
    return await _transition(store, mid, doubles.update_draft, body.changes())


@router.post("/{mid}/draft/big-point", response_model=MatchOut)
async def toggle_big_point(mid: str, store: MatchStore = Depends(get_store)):
    return await _transition(store, mid, doubles.toggle_big_point)


@router.put("/{mid}/server", response_model=MatchOut)
async def set_server(mid: str, body: ServerIn, store: MatchStore = Depends(get_store)):
    return await _transition(store, mid, doubles.set_server, body.team, body.player)


@router.post("/{mid}/points", response_model=MatchOut)
async def commit_point(mid: str, body: PointIn, store: MatchStore = Depends(get_store)):
    return await _transition(store, mid, doubles.commit_point, body.winningTeam)


@router.post("/{mid}/undo", response_model=MatchOut)
async def undo_last_point(mid: str, store: MatchStore = Depends(get_store)):
    return await _transition(store, mid, doubles.undo_last_point)


@router.post("/{mid}/reset", response_model=MatchOut)
async def reset_match(mid: str, store: MatchStore = Depends(get_store)):
    out = await _transition(store, mid, doubles.reset_match)
    logger.info("Reset match %s", mid)
    return out


@router.get("/{mid}/stats", response_model=StatsOut)
async def match_stats(mid: str, store: MatchStore = Depends(get_store)):
    state = await store.get(mid)
    return aggregate(state["points"])
