"""Internal application services (pure helpers, no I/O)."""

from .validation import (
    ValidationError,
    InvalidEnumError,
    IncompletePointError,
    validate_draft_patch,
    require_complete_draft,
)
from .analytics import (
    serve_direction_stats,
    formation_stats,
    tactic_stats,
    result_stats,
    big_point_stats,
    aggregate,
    flatten_points,
    match_overview,
)

__all__ = [
    "ValidationError",
    "InvalidEnumError",
    "IncompletePointError",
    "validate_draft_patch",
    "require_complete_draft",
    "serve_direction_stats",
    "formation_stats",
    "tactic_stats",
    "result_stats",
    "big_point_stats",
    "aggregate",
    "flatten_points",
    "match_overview",
]
