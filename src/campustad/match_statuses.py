"""Shared match-status, stage and knockout-round definitions.

This module is the single source of truth for the vocabularies reused
across the ledger, the standings engine, web handlers and API filters.
"""

from __future__ import annotations

from typing import Iterable, Optional

# Individual statuses currently used in the system.
ALL_MATCH_STATUSES: tuple[str, ...] = (
    "scheduled",
    "finished",
)

ALL_MATCH_STAGES: tuple[str, ...] = (
    "group",
    "knockout",
)

# Canonical status groups.
MATCH_STATUS_GROUPS: dict[str, tuple[str, ...]] = {
    # Fixtures still open for predictions.
    "upcoming": ("scheduled",),
    # Results that feed standings and prediction scoring.
    "finished": ("finished",),
    # Full set used by UI filters when users want explicit control.
    "all": ALL_MATCH_STATUSES,
}

# Knockout round codes offered by the admin UI, in bracket order.
KNOCKOUT_ROUNDS: dict[str, str] = {
    "R16": "Round of 16",
    "QF": "Quarterfinal",
    "SF": "Semifinal",
    "3P": "3rd Place",
    "F": "Final",
}

# Label used for knockout matches without a round.
DEFAULT_KNOCKOUT_LABEL = "Knockout"


def get_status_group(group_name: str) -> tuple[str, ...]:
    """Return a named status group, raising KeyError for unknown names."""
    return MATCH_STATUS_GROUPS[group_name]


def normalize_status_filter(
    raw_statuses: Iterable[str] | None,
    *,
    default_group: str = "all",
) -> list[str]:
    """Normalize requested statuses against known values.

    - If no statuses are provided, returns the statuses from ``default_group``.
    - Unknown statuses are ignored.
    - Order is preserved and duplicates are removed.
    """
    if raw_statuses is None:
        return list(get_status_group(default_group))

    seen: set[str] = set()
    normalized: list[str] = []

    for raw in raw_statuses:
        status = raw.strip().lower()
        if not status or status in seen or status not in ALL_MATCH_STATUSES:
            continue
        seen.add(status)
        normalized.append(status)

    if normalized:
        return normalized

    return list(get_status_group(default_group))


def round_display_name(code: Optional[str]) -> str:
    """Human label for a stored knockout round (code or free text)."""
    if not code or not code.strip():
        return DEFAULT_KNOCKOUT_LABEL
    return KNOCKOUT_ROUNDS.get(code.strip().upper(), code.strip())
