from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple

from .validation import (
    BIG_POINT_TYPES,
    FORMATIONS,
    OUTCOMES,
    SERVE_LOCATIONS,
    SERVE_SIDES,
    TACTICS,
)

Point = Mapping[str, Any]


def _rate(won: int, total: int) -> float:
    return won / total if total else 0.0


def point_outcome(point: Point) -> str:
    """Return the tactical outcome tag of a point.

    Committed points keep the operator's tag in ``outcome`` because ``result``
    is rewritten to the serving/receiving attribution.  Hand-built or legacy
    records only carry ``result``.
    """
    value = point.get("outcome") or point.get("result") or ""
    return value if isinstance(value, str) else ""


def _is_won(point: Point) -> bool:
    outcome = point_outcome(point)
    return bool(outcome) and outcome != "return-error"


def split_serve_direction(value: Any) -> Tuple[str, str] | None:
    """Split ``"deuce-body-bh"`` into ``("deuce", "body-bh")``.

    Returns ``None`` for anything outside the eight known buckets.
    """
    if not isinstance(value, str) or "-" not in value:
        return None
    side, location = value.split("-", 1)
    if side not in SERVE_SIDES or location not in SERVE_LOCATIONS:
        return None
    return side, location


def _won_table(keys: Iterable[str]) -> Dict[str, Dict[str, float]]:
    return {key: {"total": 0, "won": 0} for key in keys}


def _serve_table(fields: Sequence[str]) -> Dict[str, Dict[str, Dict[str, int]]]:
    return {
        side: {loc: {f: 0 for f in fields} for loc in SERVE_LOCATIONS}
        for side in SERVE_SIDES
    }


def _finish(table: Dict[str, Dict[str, float]]) -> Dict[str, Dict[str, float]]:
    for bucket in table.values():
        bucket["successRate"] = _rate(bucket["won"], bucket["total"])
    return table


def _count_won(bucket: Dict[str, float], point: Point) -> None:
    bucket["total"] += 1
    if _is_won(point):
        bucket["won"] += 1


def serve_direction_stats(points: Iterable[Point]) -> Dict[str, Dict[str, Dict[str, float]]]:
    """Aces and return errors per serve side and location.

    ``successRate`` counts both aces and return errors as a successful serve.
    """
    stats = _serve_table(("total", "aces", "returnErrors"))
    for point in points:
        parsed = split_serve_direction(point.get("serveDirection"))
        if parsed is None:
            continue
        bucket = stats[parsed[0]][parsed[1]]
        bucket["total"] += 1
        outcome = point_outcome(point)
        if outcome == "ace":
            bucket["aces"] += 1
        elif outcome == "return-error":
            bucket["returnErrors"] += 1
    for side in stats.values():
        for bucket in side.values():
            bucket["successRate"] = _rate(
                bucket["aces"] + bucket["returnErrors"], bucket["total"]
            )
    return stats


def _dimension_stats(points: Iterable[Point], field: str, keys: Sequence[str]):
    stats = _won_table(keys)
    for point in points:
        value = point.get(field)
        if isinstance(value, str) and value in stats:
            _count_won(stats[value], point)
    return _finish(stats)


def formation_stats(points: Iterable[Point]) -> Dict[str, Dict[str, float]]:
    """Points played and won per formation.

    A point counts as won whenever it has an outcome other than
    ``return-error``.
    """
    return _dimension_stats(points, "formation", FORMATIONS)


def tactic_stats(points: Iterable[Point]) -> Dict[str, Dict[str, float]]:
    """Points played and won per tactic, with the same won rule as formations."""
    return _dimension_stats(points, "tactic", TACTICS)


def result_stats(points: Iterable[Point]) -> Dict[str, Dict[str, float]]:
    """Distribution of outcomes; ``percentage`` is relative to tagged points."""
    stats: Dict[str, Dict[str, float]] = {key: {"total": 0} for key in OUTCOMES}
    tagged = 0
    for point in points:
        outcome = point_outcome(point)
        if outcome in stats:
            stats[outcome]["total"] += 1
            tagged += 1
    for bucket in stats.values():
        bucket["percentage"] = _rate(bucket["total"], tagged)
    return stats


def big_point_stats(points: Iterable[Point]) -> Dict[str, Any]:
    """Performance on big points, sliced independently by several dimensions.

    A single big point contributes to its type, formation, tactic and serve
    direction buckets at the same time.
    """
    overall = {"total": 0, "won": 0}
    by_type = _won_table(BIG_POINT_TYPES)
    by_formation = _won_table(FORMATIONS)
    by_tactic = _won_table(TACTICS)
    by_serve = _serve_table(("total", "won"))

    for point in points:
        if point.get("isBigPoint") is not True:
            continue
        _count_won(overall, point)
        for value, table in (
            (point.get("bigPointType"), by_type),
            (point.get("formation"), by_formation),
            (point.get("tactic"), by_tactic),
        ):
            if isinstance(value, str) and value in table:
                _count_won(table[value], point)
        parsed = split_serve_direction(point.get("serveDirection"))
        if parsed is not None:
            _count_won(by_serve[parsed[0]][parsed[1]], point)

    for side in by_serve.values():
        _finish(side)
    return {
        "total": overall["total"],
        "won": overall["won"],
        "successRate": _rate(overall["won"], overall["total"]),
        "byType": _finish(by_type),
        "byFormation": _finish(by_formation),
        "byTactic": _finish(by_tactic),
        "byServeDirection": by_serve,
    }


def aggregate(points: Iterable[Point]) -> Dict[str, Any]:
    """Compute every breakdown table over ``points``."""
    points = list(points)
    return {
        "totalPoints": len(points),
        "serveDirection": serve_direction_stats(points),
        "formation": formation_stats(points),
        "tactic": tactic_stats(points),
        "result": result_stats(points),
        "bigPoints": big_point_stats(points),
    }


def flatten_points(matches: Iterable[Mapping[str, Any]]) -> list[Dict[str, Any]]:
    """Merge the point logs of several matches, tagging each point with its match context."""
    flattened: list[Dict[str, Any]] = []
    for match in matches:
        context = {
            "court": match.get("court", ""),
            "team1": match.get("team1"),
            "team2": match.get("team2"),
        }
        for point in match.get("points") or []:
            flattened.append({**point, **context})
    return flattened


def match_overview(matches: Mapping[str, Mapping[str, Any]]) -> list[Dict[str, Any]]:
    """Summarise stored matches keyed by id, ordered by id."""
    overview = []
    for mid in sorted(matches):
        match = matches[mid]
        score = match.get("score") or {}
        overview.append(
            {
                "id": mid,
                "court": match.get("court", ""),
                "team1": (match.get("team1") or {}).get("name", ""),
                "team2": (match.get("team2") or {}).get("name", ""),
                "sets": {
                    "team1": score.get("team1", {}).get("sets", 0),
                    "team2": score.get("team2", {}).get("sets", 0),
                },
                "games": {
                    "team1": score.get("team1", {}).get("games", 0),
                    "team2": score.get("team2", {}).get("games", 0),
                },
                "pointsRecorded": len(match.get("points") or []),
            }
        )
    return overview
