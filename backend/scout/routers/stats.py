from fastapi import APIRouter, Depends

from ..schemas import OverallStatsOut
from ..services.analytics import aggregate, flatten_points, match_overview
from ..store import MatchStore, get_store

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=OverallStatsOut)
async def overall_stats(store: MatchStore = Depends(get_store)):
    """Tactical breakdown over every recorded match."""
    matches = await store.list()
    return {
        **aggregate(flatten_points(matches.values())),
        "totalMatches": len(matches),
        "matches": match_overview(matches),
    }
