"""
Greedy recommender.

Auto-fills a deck from the filtered catalog, best damage per point first.

Strategy:
1. Score each candidate: sum of effective damage over ranges 0-3 / max(1, points)
2. Stable sort by score, descending (ties keep catalog order)
3. For each candidate, add copies while:
   - the copy still fits under the point cap
   - copies stay under the unit's copy cap
   Once fewer than `reserve_margin` points remain after a copy, move on
   to the next candidate
4. Stop early once spending reaches point_cap - 1

Single pass, not globally optimal. Same inputs always give the same deck.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from fleetbuilder.config import RECOMMEND_RESERVE_MARGIN
from fleetbuilder.models.deck import Deck
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.unit import Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredUnit:
    unit: Unit
    score: float


@dataclass
class Recommendation:
    """Result of one recommender pass."""

    deck: Deck
    spent: int
    ranking: list[ScoredUnit] = field(default_factory=list)


def score_unit(unit: Unit) -> float:
    """Damage-per-point heuristic."""
    return unit.total_effective() / max(1, unit.points)


def rank_candidates(candidates: Sequence[Unit]) -> list[ScoredUnit]:
    """Score and sort candidates, best first. sorted() is stable, so ties keep input order."""
    scored = [ScoredUnit(unit=unit, score=score_unit(unit)) for unit in candidates]
    return sorted(scored, key=lambda s: s.score, reverse=True)


def recommend(
    candidates: Sequence[Unit],
    deck: Deck,
    ownership: OwnershipMap | None = None,
    enforce_ownership: bool = False,
    reserve_margin: int = RECOMMEND_RESERVE_MARGIN,
) -> Recommendation:
    """
    Build a replacement deck from the candidates.

    The copy cap and point cap are enforced inline, so the result satisfies
    the same limits as the constraint validator. Faction consistency comes
    from the candidates: pass the filtered catalog, which already honours
    the faction rule.

    Args:
        candidates: Filtered catalog, in catalog order
        deck: Current deck; its name, point cap and rule are kept, entries replaced
        ownership: Ownership records (empty when anonymous)
        enforce_ownership: Owned-only mode; missing records then cap at 0
        reserve_margin: Move to the next candidate once fewer points remain

    Returns:
        Recommendation with the new deck and the points spent
    """
    ownership = ownership or OwnershipMap()
    point_cap = deck.point_cap

    ranking = rank_candidates(candidates)
    entries: dict[str, int] = {}
    spent = 0

    for scored in ranking:
        unit = scored.unit
        limit = ownership.copy_limit(unit.id, enforce=enforce_ownership)

        while spent + unit.points <= point_cap and entries.get(unit.id, 0) < limit:
            entries[unit.id] = entries.get(unit.id, 0) + 1
            spent += unit.points
            # Too little headroom left for another copy of this unit
            if point_cap - spent < reserve_margin:
                break

        if spent >= point_cap - 1:
            break

    logger.info(
        "deck_recommended",
        extra={
            "candidates": len(candidates),
            "distinct_units": len(entries),
            "spent": spent,
            "point_cap": point_cap,
        },
    )

    return Recommendation(deck=deck.with_entries(entries), spent=spent, ranking=ranking)
