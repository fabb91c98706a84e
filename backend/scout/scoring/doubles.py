"""Doubles tennis scoring engine.
Tracks points -> games -> sets for a tactical point log.

Every transition takes a match document and returns a new one; the input is
never mutated.  Scoring follows a simplified model: a side at 40 wins the
game on its next point regardless of the opponent's count, there is no
tiebreak, and a set needs six games with a two game margin.
"""

import copy
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from ..services.validation import (
    ValidationError,
    require_complete_draft,
    validate_draft_patch,
    validate_player,
    validate_team,
)
from ..time_utils import utc_now_iso

logger = logging.getLogger(__name__)

POINT_LABELS = {0: "0", 1: "15", 2: "30", 3: "40", 4: "AD"}


class EmptyHistoryError(Exception):
    """Raised when undo is requested before any point was recorded."""

    def __init__(self) -> None:
        super().__init__("no points recorded")
        self.detail = "no points recorded"


def _key(team: int) -> str:
    return f"team{team}"


def _other(team: int) -> int:
    return 2 if team == 1 else 1


def empty_draft(
    serving_team: int = 1, serving_player: int = 0, receiving_player: int = 0
) -> Dict:
    """Return a blank point draft for the given serve context."""
    return {
        "servingTeam": serving_team,
        "servingPlayer": serving_player,
        "receivingTeam": _other(serving_team),
        "receivingPlayer": receiving_player,
        "serveDirection": "",
        "formation": "",
        "tactic": "",
        "result": "",
        "isBigPoint": False,
        "bigPointType": "",
        "rallyLength": 0,
        "notes": "",
    }


def _empty_score() -> Dict:
    return {
        "team1": {"sets": 0, "games": 0, "points": 0},
        "team2": {"sets": 0, "games": 0, "points": 0},
    }


def _empty_game() -> Dict:
    return {"team1": 0, "team2": 0}


def _players(raw: Optional[Iterable[Any]]) -> list:
    players = ["" if p is None else str(p) for p in (raw or ["", ""])]
    if len(players) != 2:
        raise ValidationError("A team must have exactly two players.")
    return players


def _team(raw: Optional[Mapping]) -> Dict:
    raw = raw or {}
    return {"name": str(raw.get("name") or ""), "players": _players(raw.get("players"))}


def init_state(config: Dict) -> Dict:
    """Initialise a match document.

    ``config`` may contain ``court``, ``team1``/``team2`` (``{name, players}``)
    and ``createdAt``; missing values default to blanks and the current time.
    """

    return {
        "court": str(config.get("court") or ""),
        "team1": _team(config.get("team1")),
        "team2": _team(config.get("team2")),
        "points": [],
        "currentServer": 1,
        "currentPoint": empty_draft(),
        "score": _empty_score(),
        "currentGame": _empty_game(),
        "createdAt": config.get("createdAt") or utc_now_iso(),
    }


def classify_big_point(state: Dict, winning_team: int) -> str:
    """Return the automatic big-point type of a point, or ``""``.

    Evaluated against the score *before* the point is applied.  When several
    kinds apply the strongest wins: match point, then set point, then break
    point.
    """

    key = _key(winning_team)
    if state["currentGame"][key] != 3:
        return ""
    games = state["score"][key]["games"]
    if state["score"][key]["sets"] == 1 and games == 5:
        return "match-point"
    if games == 5:
        return "set-point"
    if state["currentPoint"]["servingTeam"] != winning_team:
        return "break-point"
    return ""


def commit_point(state: Dict, winning_team: int, *, timestamp: Optional[str] = None) -> Dict:
    """Record the current draft as a point won by ``winning_team``."""

    winner = validate_team(winning_team, field="winningTeam")
    require_complete_draft(state["currentPoint"])

    state = copy.deepcopy(state)
    draft = state["currentPoint"]
    serving_team = draft["servingTeam"]
    logger.debug("Point scored by team %s", winner)

    point = dict(draft)
    point["outcome"] = draft["result"]
    point["result"] = (
        "serving-team-won" if winner == serving_team else "receiving-team-won"
    )
    point["timestamp"] = timestamp or utc_now_iso()
    big_point_type = classify_big_point(state, winner)
    if big_point_type:
        point["isBigPoint"] = True
        point["bigPointType"] = big_point_type

    side, opp = _key(winner), _key(_other(winner))
    score, game = state["score"], state["currentGame"]
    if game[side] == 3:
        score[side]["games"] += 1
        game["team1"] = game["team2"] = 0
        logger.debug("Game won by team %s", winner)
        gs, go = score[side]["games"], score[opp]["games"]
        if gs >= 6 and gs - go >= 2:
            score[side]["sets"] += 1
            score["team1"]["games"] = score["team2"]["games"] = 0
            logger.debug("Set won by team %s", winner)
    else:
        game[side] += 1

    state["points"].append(point)
    state["currentServer"] = serving_team
    state["currentPoint"] = empty_draft(
        serving_team, 1 - draft["servingPlayer"], draft["receivingPlayer"]
    )
    return state


def set_server(state: Dict, team: int, player: int) -> Dict:
    team = validate_team(team)
    player = validate_player(player)
    state = copy.deepcopy(state)
    state["currentPoint"].update(
        servingTeam=team,
        servingPlayer=player,
        receivingTeam=_other(team),
        receivingPlayer=0,
    )
    state["currentServer"] = team
    return state


def update_draft(state: Dict, patch: Mapping[str, Any]) -> Dict:
    """Replace the given draft fields; fields not in ``patch`` are kept."""
    changes = validate_draft_patch(patch)
    state = copy.deepcopy(state)
    state["currentPoint"].update(changes)
    return state


def toggle_big_point(state: Dict) -> Dict:
    """Flip the manual big-point marker on the current draft."""
    state = copy.deepcopy(state)
    draft = state["currentPoint"]
    marked = not draft.get("isBigPoint", False)
    draft["isBigPoint"] = marked
    draft["bigPointType"] = "manual" if marked else ""
    return state


def update_team(
    state: Dict,
    team: int,
    *,
    name: Optional[str] = None,
    players: Optional[Iterable[Any]] = None,
) -> Dict:
    team = validate_team(team)
    state = copy.deepcopy(state)
    record = state[_key(team)]
    if name is not None:
        record["name"] = str(name)
    if players is not None:
        record["players"] = _players(players)
    return state


def undo_last_point(state: Dict) -> Dict:
    """Drop the last point and restore its serve context.

    Score and game counters keep their current values; only the history and
    the serve context roll back.
    """

    if not state["points"]:
        raise EmptyHistoryError()
    state = copy.deepcopy(state)
    last = state["points"].pop()
    draft = empty_draft(
        last["servingTeam"], last["servingPlayer"], last["receivingPlayer"]
    )
    draft["receivingTeam"] = last["receivingTeam"]
    state["currentPoint"] = draft
    state["currentServer"] = last["servingTeam"]
    return state


def reset_match(state: Dict) -> Dict:
    state = copy.deepcopy(state)
    state["points"] = []
    state["currentServer"] = 1
    state["currentPoint"] = empty_draft()
    state["score"] = _empty_score()
    state["currentGame"] = _empty_game()
    return state


def winning_team(point: Mapping[str, Any]) -> int:
    """Return the team (1 or 2) that won a recorded point."""
    if point.get("result") == "serving-team-won":
        return point["servingTeam"]
    return point["receivingTeam"]


def point_label(points: int) -> str:
    return POINT_LABELS.get(points, "0")


def score_line(state: Dict) -> str:
    score, game = state["score"], state["currentGame"]
    return (
        f"{score['team1']['sets']}-{score['team2']['sets']} | "
        f"{score['team1']['games']}-{score['team2']['games']} | "
        f"{point_label(game['team1'])}-{point_label(game['team2'])}"
    )


def _player_label(state: Dict, team: int, player: int) -> str:
    record = state[_key(team)]
    name = record["name"] or f"Team {team}"
    return f"{name} - {record['players'][player] or f'Player {player + 1}'}"


def serve_labels(state: Dict) -> Dict[str, str]:
    draft = state["currentPoint"]
    return {
        "serving": _player_label(state, state["currentServer"], draft["servingPlayer"]),
        "receiving": _player_label(state, draft["receivingTeam"], draft["receivingPlayer"]),
    }


def summary(state: Dict) -> Dict:
    return {
        "score": state["score"],
        "currentGame": state["currentGame"],
        "scoreLine": score_line(state),
        "currentServer": state["currentServer"],
        **serve_labels(state),
        "pointsRecorded": len(state["points"]),
    }
