from typing import Any, Dict, Iterable, List, Mapping

SERVE_SIDES = ("deuce", "ad")
SERVE_LOCATIONS = ("body-bh", "body-fh", "wide", "t")
SERVE_DIRECTIONS = tuple(
    f"{side}-{location}" for side in SERVE_SIDES for location in SERVE_LOCATIONS
)
FORMATIONS = ("regular", "mini-i", "i-formation")
TACTICS = ("serve-volley", "stay-back", "poach", "fake-poach")
OUTCOMES = ("ace", "return-winner", "return-error", "poach", "rally")
BIG_POINT_TYPES = ("break-point", "set-point", "match-point", "manual")
ATTRIBUTIONS = ("serving-team-won", "receiving-team-won")

TEAMS = (1, 2)
PLAYERS = (0, 1)

# Draft fields holding a closed-set tag; "" means "not chosen yet".
DRAFT_TAG_FIELDS: Dict[str, tuple] = {
    "serveDirection": SERVE_DIRECTIONS,
    "formation": FORMATIONS,
    "tactic": TACTICS,
    "result": OUTCOMES,
    "bigPointType": BIG_POINT_TYPES,
}
REQUIRED_DRAFT_FIELDS = ("serveDirection", "formation", "tactic", "result")
SERVE_CONTEXT_FIELDS = (
    "servingTeam",
    "servingPlayer",
    "receivingTeam",
    "receivingPlayer",
)
EDITABLE_DRAFT_FIELDS = tuple(DRAFT_TAG_FIELDS) + ("isBigPoint", "rallyLength", "notes")


class ValidationError(Exception):
    """Raised when a match document or point draft is invalid."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class InvalidEnumError(ValidationError):
    """A field holds a value outside its closed set."""

    def __init__(self, field: str, value: Any, allowed: Iterable[Any]) -> None:
        allowed_list = ", ".join(repr(v) for v in allowed)
        super().__init__(f"{field} must be one of {allowed_list} (got {value!r})")
        self.field = field
        self.value = value


class IncompletePointError(ValidationError):
    """A point was committed before every required draft field was set."""

    def __init__(self, missing: List[str]) -> None:
        super().__init__("point is missing " + ", ".join(missing))
        self.missing = missing


def validate_team(team: Any, *, field: str = "team") -> int:
    # bool is an int subclass; True must not pass as team 1
    if isinstance(team, bool) or team not in TEAMS:
        raise InvalidEnumError(field, team, TEAMS)
    return int(team)


def validate_player(player: Any, *, field: str = "player") -> int:
    if isinstance(player, bool) or player not in PLAYERS:
        raise InvalidEnumError(field, player, PLAYERS)
    return int(player)


def normalize_tag(field: str, value: Any) -> str:
    """Return ``value`` as a closed-set tag, or ``""`` when it is empty."""

    if value is None or value == "":
        return ""
    allowed = DRAFT_TAG_FIELDS[field]
    if value not in allowed:
        raise InvalidEnumError(field, value, allowed)
    return value


def validate_draft_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a partial draft update and return the normalized patch.

    Rules:
    - Only editable draft fields are accepted; serve context is changed
      through ``set_server`` so ``currentServer`` stays in sync
    - Tag fields must be empty or one of their closed-set values
    - ``isBigPoint`` must be a boolean
    - ``rallyLength`` must be a non-negative integer (booleans are rejected)
    - ``notes`` must be a string
    """

    normalized: Dict[str, Any] = {}
    for field, value in patch.items():
        if field in SERVE_CONTEXT_FIELDS:
            raise ValidationError(f"{field} cannot be patched; change the server instead.")
        if field not in EDITABLE_DRAFT_FIELDS:
            raise ValidationError(f"Unknown draft field: {field}.")

        if field in DRAFT_TAG_FIELDS:
            normalized[field] = normalize_tag(field, value)
        elif field == "isBigPoint":
            if not isinstance(value, bool):
                raise ValidationError("isBigPoint must be a boolean.")
            normalized[field] = value
        elif field == "rallyLength":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError("rallyLength must be an integer.")
            if value < 0:
                raise ValidationError("rallyLength must be >= 0.")
            normalized[field] = value
        else:
            if not isinstance(value, str):
                raise ValidationError("notes must be a string.")
            normalized[field] = value
    return normalized


def require_complete_draft(draft: Mapping[str, Any]) -> None:
    """Raise unless the draft can be frozen into a point."""

    missing = [f for f in REQUIRED_DRAFT_FIELDS if not draft.get(f)]
    if missing:
        raise IncompletePointError(missing)
    for field in DRAFT_TAG_FIELDS:
        normalize_tag(field, draft.get(field))
    validate_team(draft.get("servingTeam"), field="servingTeam")
    validate_player(draft.get("servingPlayer"), field="servingPlayer")
