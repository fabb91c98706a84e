from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from .time_utils import require_utc

ServeDirection = Literal[
    "deuce-body-bh",
    "deuce-body-fh",
    "deuce-wide",
    "deuce-t",
    "ad-body-bh",
    "ad-body-fh",
    "ad-wide",
    "ad-t",
]
Formation = Literal["regular", "mini-i", "i-formation"]
Tactic = Literal["serve-volley", "stay-back", "poach", "fake-poach"]
Outcome = Literal["ace", "return-winner", "return-error", "poach", "rally"]
BigPointType = Literal["break-point", "set-point", "match-point", "manual"]
TeamNumber = Literal[1, 2]
PlayerIndex = Literal[0, 1]


def _strip_required(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValueError(f"{field} must not be empty")
    return trimmed


class TeamIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    players: List[str] = Field(default_factory=lambda: ["", ""])

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _strip_required(value, "name")

    @field_validator("players")
    @classmethod
    def _validate_players(cls, value: List[str]) -> List[str]:
        if len(value) != 2:
            raise ValueError("a team must have exactly two players")
        return [p.strip() for p in value]


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    players: Optional[List[str]] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("players")
    @classmethod
    def _validate_players(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is not None and len(value) != 2:
            raise ValueError("a team must have exactly two players")
        return value

    @model_validator(mode="after")
    def _ensure_fields(self) -> "TeamUpdate":
        if self.name is None and self.players is None:
            raise ValueError("at least one field must be provided")
        return self


class MatchCreate(BaseModel):
    court: str = Field(..., min_length=1, max_length=100)
    team1: TeamIn
    team2: TeamIn
    createdAt: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("court", mode="before")
    @classmethod
    def _validate_court(cls, value: str) -> str:
        return _strip_required(value, "court")

    @field_validator("createdAt")
    def _normalize_created_at(cls, v: datetime | None) -> datetime | None:
        return require_utc(v, field_name="createdAt")


class DraftPatch(BaseModel):
    """Partial update of the point being recorded; ``""`` clears a tag."""

    serveDirection: Optional[ServeDirection | Literal[""]] = None
    formation: Optional[Formation | Literal[""]] = None
    tactic: Optional[Tactic | Literal[""]] = None
    result: Optional[Outcome | Literal[""]] = None
    isBigPoint: Optional[bool] = None
    bigPointType: Optional[BigPointType | Literal[""]] = None
    rallyLength: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _ensure_fields(self) -> "DraftPatch":
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ServerIn(BaseModel):
    team: TeamNumber
    player: PlayerIndex


class PointIn(BaseModel):
    winningTeam: TeamNumber


class MatchIdOut(BaseModel):
    id: str


class ScoreSideOut(BaseModel):
    sets: int
    games: int
    points: int = 0


class MatchSummaryOut(BaseModel):
    id: str
    court: str
    team1: str
    team2: str
    sets: Dict[str, int]
    games: Dict[str, int]
    pointsRecorded: int


class MatchOut(BaseModel):
    id: str
    court: str
    team1: Dict[str, Any]
    team2: Dict[str, Any]
    points: List[Dict[str, Any]]
    currentServer: TeamNumber
    currentPoint: Dict[str, Any]
    score: Dict[str, ScoreSideOut]
    currentGame: Dict[str, int]
    createdAt: str
    summary: Dict[str, Any]


class StatsOut(BaseModel):
    totalPoints: int
    serveDirection: Dict[str, Any]
    formation: Dict[str, Any]
    tactic: Dict[str, Any]
    result: Dict[str, Any]
    bigPoints: Dict[str, Any]


class OverallStatsOut(StatsOut):
    totalMatches: int
    matches: List[MatchSummaryOut]
