"""Rating record updates, ordering, and rank-position changes."""

from pydantic import BaseModel

from pinranks.models import EloScores, FilterCategory, RatingRecord
from pinranks.rating.elo import K_FACTOR, compute_update


class RankingChange(BaseModel):
    """Position of a group before and after a vote (1-based, None if unranked)."""
    old_position: int | None = None
    new_position: int | None = None
    # Positive means the group moved up; None when it was not ranked before
    change: int | None = 0


def apply_outcome(
    record: RatingRecord,
    winner_group_id: str,
    loser_group_id: str,
    winner_category: FilterCategory | None = None,
    loser_category: FilterCategory | None = None,
    k: float = K_FACTOR,
) -> RatingRecord:
    """Return a new record with one outcome applied.

    The overall score always moves. The category sub-score moves only when
    both sides have the same known category.
    """
    winner = EloScores.normalize(record.get(winner_group_id))
    loser = EloScores.normalize(record.get(loser_group_id))

    new_winner_all, new_loser_all = compute_update(winner.all, loser.all, k)
    winner = winner.with_score(None, new_winner_all)
    loser = loser.with_score(None, new_loser_all)

    if (
        winner_category is not None
        and winner_category == loser_category
        and winner_category != FilterCategory.ALL
    ):
        new_winner_cat, new_loser_cat = compute_update(
            winner.score(winner_category), loser.score(winner_category), k
        )
        winner = winner.with_score(winner_category, new_winner_cat)
        loser = loser.with_score(winner_category, new_loser_cat)

    updated = dict(record)
    updated[winner_group_id] = winner
    updated[loser_group_id] = loser
    return updated


def ranked_group_ids(
    record: RatingRecord,
    category: FilterCategory | None = None,
) -> list[str]:
    """Group ids ordered by score, highest first.

    For a category only groups that have a score in it are listed.
    """
    if category is None or category == FilterCategory.ALL:
        rated = list(record)
    else:
        rated = [gid for gid, scores in record.items() if str(category) in (scores.model_extra or {})]
    return sorted(rated, key=lambda gid: record[gid].score(category), reverse=True)


def ranking_position(group_id: str, ordered: list[str]) -> int | None:
    try:
        return ordered.index(group_id) + 1
    except ValueError:
        return None


def ranking_change(group_id: str, before: list[str], after: list[str]) -> RankingChange:
    old_position = ranking_position(group_id, before)
    new_position = ranking_position(group_id, after)
    if old_position is None or new_position is None:
        return RankingChange(
            old_position=old_position,
            new_position=new_position,
            change=0 if old_position == new_position else None,
        )
    return RankingChange(
        old_position=old_position,
        new_position=new_position,
        change=old_position - new_position,
    )


def preview_rankings(
    record: RatingRecord,
    winner_group_id: str,
    loser_group_id: str,
    winner_category: FilterCategory | None = None,
    loser_category: FilterCategory | None = None,
) -> tuple[RankingChange, RankingChange]:
    """Optimistic (winner, loser) rank changes, without touching any store."""
    before = ranked_group_ids(record)
    after = ranked_group_ids(
        apply_outcome(record, winner_group_id, loser_group_id, winner_category, loser_category)
    )
    return (
        ranking_change(winner_group_id, before, after),
        ranking_change(loser_group_id, before, after),
    )
