"""Elo ratings: pure math, per-user record updates and the vote queue."""

from pinranks.rating.elo import compute_update, expected_score
from pinranks.rating.queue import VoteQueue
from pinranks.rating.rankings import RankingChange, apply_outcome, preview_rankings, ranked_group_ids
from pinranks.rating.service import RatingService

__all__ = [
    "RankingChange",
    "RatingService",
    "VoteQueue",
    "apply_outcome",
    "compute_update",
    "expected_score",
    "preview_rankings",
    "ranked_group_ids",
]
