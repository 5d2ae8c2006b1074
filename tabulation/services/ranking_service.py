"""
tabulation/services/ranking_service.py
Competition ranking ("1,2,2,4") over participant totals.

Rules:
- Sort by total descending
- Equal totals share a rank; the next distinct total takes its 1-based position
- Participants with no total are left out of the ranking
- Order among equal totals follows the configured tie-break key and never
  changes the shared rank
"""
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from tabulation.config.settings import TIE_BREAK_CONTESTANT_NUMBER, TIE_BREAK_INPUT_ORDER

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*$")


@dataclass(frozen=True)
class RankInput:
    participant_id: int
    total_score: Optional[Decimal]
    contestant_number: Optional[str] = None


@dataclass(frozen=True)
class RankedRow:
    participant_id: int
    total_score: Decimal
    rank: int
    contestant_number: Optional[str] = None


def contestant_number_key(number: Optional[str]) -> Tuple:
    """
    Sort key for contestant numbers: numeric values first in numeric order,
    then non-numeric strings alphabetically, then blanks.
    """
    if number is None or not str(number).strip():
        return (2, Decimal(0), "")
    text = str(number).strip()
    match = _NUMBER_RE.match(text)
    if match:
        return (0, Decimal(match.group(1)), text)
    return (1, Decimal(0), text.lower())


def rank(rows: Iterable[RankInput], tie_break: str = TIE_BREAK_CONTESTANT_NUMBER) -> List[RankedRow]:
    """
    Rank participants by total.

    Args:
        rows: Participant totals; None totals are excluded
        tie_break: "contestant_number" or "input_order" (ordering within ties only)
    Returns:
        Ranked rows in display order
    """
    rows = list(rows)
    scored = [(index, row) for index, row in enumerate(rows) if row.total_score is not None]

    if tie_break == TIE_BREAK_INPUT_ORDER:
        def sort_key(item):
            index, row = item
            return (-row.total_score, index)
    else:
        def sort_key(item):
            index, row = item
            return (-row.total_score, contestant_number_key(row.contestant_number), row.participant_id)

    scored.sort(key=sort_key)

    ranked: List[RankedRow] = []
    previous: Optional[Decimal] = None
    current_rank = 0
    for position, (_, row) in enumerate(scored, start=1):
        if previous is None or row.total_score != previous:
            current_rank = position
        previous = row.total_score
        ranked.append(RankedRow(
            participant_id=row.participant_id,
            total_score=row.total_score,
            rank=current_rank,
            contestant_number=row.contestant_number,
        ))

    logger.debug(f"Ranked {len(ranked)} of {len(rows)} participants")
    return ranked


def rank_participants(
    participants: Iterable[Any],
    totals: dict,
    tie_break: str = TIE_BREAK_CONTESTANT_NUMBER,
) -> List[RankedRow]:
    """Rank participant rows/models by a {participant_id: total} mapping."""
    return rank(
        (
            RankInput(participant.id, totals.get(participant.id), participant.contestant_number)
            for participant in participants
        ),
        tie_break=tie_break,
    )
