"""
Knockout bracket grouping.

Knockout matches carry a free-form round: a code from the admin UI
(R16/QF/SF/F/3P) or any custom text. Matches are bucketed by that raw
value and the buckets are ordered by round precedence, so a bracket
renders early rounds first whatever the admin typed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from campustad.match_statuses import DEFAULT_KNOCKOUT_LABEL, round_display_name

# Precedence values. Custom labels come after the Final and before the
# unlabelled "Knockout" bucket.
PRECEDENCE_ROUND_OF_16 = 1
PRECEDENCE_QUARTERFINAL = 2
PRECEDENCE_SEMIFINAL = 3
PRECEDENCE_THIRD_PLACE = 4
PRECEDENCE_FINAL = 5
PRECEDENCE_CUSTOM = 50
PRECEDENCE_UNLABELLED = 99


@dataclass
class KnockoutRound:
    """A bucket of knockout matches sharing one round label."""
    label: str
    precedence: int
    matches: list[Any] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return round_display_name(self.label)


def normalize_round_label(raw: Optional[str]) -> str:
    """Grouping key: the stored value, or "Knockout" when blank."""
    label = (raw or "").strip()
    return label if label else DEFAULT_KNOCKOUT_LABEL


def round_precedence(label: str) -> int:
    """
    Order value for a round label (lower = earlier in the bracket).

    Word forms match as substrings, short codes match exactly: a
    substring test for "f" would catch "Playoff" or "Round of 16".
    "semi" and "quarter" are checked before "final" for the same reason.
    """
    x = label.strip().lower()
    if "round of 16" in x or "r16" in x or "ro16" in x:
        return PRECEDENCE_ROUND_OF_16
    if "quarter" in x or x == "qf":
        return PRECEDENCE_QUARTERFINAL
    if "semi" in x or x == "sf":
        return PRECEDENCE_SEMIFINAL
    if "third" in x or "3rd" in x or "bronze" in x or x == "3p":
        return PRECEDENCE_THIRD_PLACE
    if "final" in x or x == "f":
        return PRECEDENCE_FINAL
    if x == DEFAULT_KNOCKOUT_LABEL.lower():
        return PRECEDENCE_UNLABELLED
    return PRECEDENCE_CUSTOM


def _match_sort_key(match: Any) -> tuple:
    start: Optional[datetime] = match.start_time
    order = getattr(match, "knockout_order", None)
    return (
        start is None,
        start or datetime.min,
        order if order is not None else 1,
        getattr(match, "id", 0) or 0,
    )


def compute_knockout_groups(knockout_matches: Iterable[Any]) -> list[KnockoutRound]:
    """
    Partition knockout matches into ordered round buckets.

    Every input match lands in exactly one bucket. Buckets are ordered by
    round_precedence then label; matches inside a bucket by start time
    (unscheduled last), then knockout_order.
    """
    buckets: dict[str, KnockoutRound] = {}
    for match in knockout_matches:
        label = normalize_round_label(match.knockout_round)
        if label not in buckets:
            buckets[label] = KnockoutRound(label=label, precedence=round_precedence(label))
        buckets[label].matches.append(match)

    rounds = sorted(buckets.values(), key=lambda r: (r.precedence, r.label))
    for rnd in rounds:
        rnd.matches.sort(key=_match_sort_key)
    return rounds
