"""Pure Elo rating calculations."""

import math

from pinranks.models import BASE_SCORE

K_FACTOR = 32


def expected_score(rating_a: float, rating_b: float) -> float:
    """Calculate expected score for A against B.

    Uses the standard Elo formula: E_A = 1 / (1 + 10^((R_B - R_A) / 400))

    Args:
        rating_a: Rating of A
        rating_b: Rating of B

    Returns:
        Expected score (0.0 to 1.0) for A
    """
    return 1.0 / (1.0 + math.pow(10.0, (rating_b - rating_a) / 400.0))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_update(
    winner_score: float = BASE_SCORE,
    loser_score: float = BASE_SCORE,
    k: float = K_FACTOR,
) -> tuple[int, int]:
    """New (winner, loser) ratings after one decisive outcome.

    Both results are rounded to integers with halves rounded up, so
    ``compute_update(1200, 1200)`` gives ``(1216, 1184)`` and
    ``compute_update(1200, 1200, k=33)`` gives ``(1217, 1184)``.
    """
    expected_win = expected_score(winner_score, loser_score)
    new_winner = winner_score + k * (1 - expected_win)
    new_loser = loser_score + k * (0 - (1 - expected_win))
    return _round_half_up(new_winner), _round_half_up(new_loser)
