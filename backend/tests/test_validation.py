import pytest
from scout.services.validation import (
    IncompletePointError,
    InvalidEnumError,
    ValidationError,
    normalize_tag,
    require_complete_draft,
    validate_draft_patch,
    validate_player,
    validate_team,
)


def _draft(**overrides):
    draft = {
        "servingTeam": 1,
        "servingPlayer": 0,
        "receivingTeam": 2,
        "receivingPlayer": 0,
        "serveDirection": "ad-t",
        "formation": "i-formation",
        "tactic": "fake-poach",
        "result": "return-winner",
        "isBigPoint": False,
        "bigPointType": "",
        "rallyLength": 0,
        "notes": "",
    }
    draft.update(overrides)
    return draft


def test_accepts_complete_draft() -> None:
    require_complete_draft(_draft())
    require_complete_draft(_draft(bigPointType="manual", isBigPoint=True))


def test_lists_every_missing_field() -> None:
    with pytest.raises(IncompletePointError) as exc:
        require_complete_draft(_draft(formation="", result=""))
    assert exc.value.missing == ["formation", "result"]
    assert "formation" in str(exc.value)


def test_incomplete_point_is_a_validation_error() -> None:
    assert issubclass(IncompletePointError, ValidationError)
    assert issubclass(InvalidEnumError, ValidationError)


@pytest.mark.parametrize(
    "field, value",
    [
        ("serveDirection", "deuce-lob"),
        ("serveDirection", "middle-t"),
        ("formation", "australian"),
        ("tactic", "drop-shot"),
        ("result", "serving-team-won"),
        ("bigPointType", "deuce"),
    ],
    ids=["bad-location", "bad-side", "formation", "tactic", "attribution", "big-point"],
)
def test_rejects_values_outside_closed_sets(field, value) -> None:
    with pytest.raises(InvalidEnumError) as exc:
        normalize_tag(field, value)
    assert exc.value.field == field
    assert repr(value) in str(exc.value)


def test_empty_tag_is_normalized() -> None:
    assert normalize_tag("tactic", None) == ""
    assert normalize_tag("tactic", "") == ""
    assert normalize_tag("tactic", "poach") == "poach"


@pytest.mark.parametrize(
    "patch, msg",
    [
        ({"servingTeam": 2}, "change the server"),
        ({"receivingPlayer": 1}, "change the server"),
        ({"colour": "red"}, "unknown draft field"),
        ({"isBigPoint": "yes"}, "boolean"),
        ({"rallyLength": -1}, ">= 0"),
        ({"rallyLength": True}, "integer"),
        ({"rallyLength": 2.5}, "integer"),
        ({"notes": 42}, "string"),
    ],
    ids=[
        "serving-team",
        "receiving-player",
        "unknown",
        "big-point-flag",
        "negative-rally",
        "bool-rally",
        "float-rally",
        "notes",
    ],
)
def test_rejects_invalid_patches(patch, msg) -> None:
    with pytest.raises(ValidationError) as exc:
        validate_draft_patch(patch)
    assert msg.lower() in str(exc.value).lower()


def test_normalizes_valid_patch() -> None:
    assert validate_draft_patch(
        {"serveDirection": "deuce-body-bh", "tactic": None, "rallyLength": 4}
    ) == {"serveDirection": "deuce-body-bh", "tactic": "", "rallyLength": 4}


def test_team_and_player_ranges() -> None:
    assert validate_team(2) == 2
    assert validate_player(0) == 0
    for bad in (0, 3, "1", True, None):
        with pytest.raises(InvalidEnumError):
            validate_team(bad)
    for bad in (-1, 2, False):
        with pytest.raises(InvalidEnumError):
            validate_player(bad)
