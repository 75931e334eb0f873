"""Unit tests for Elo rating calculations."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pinranks.rating.elo import compute_update, expected_score

# Mark all tests in this module as unit tests
pytestmark = pytest.mark.unit


class TestExpectedScore:
    """Tests for expected_score function."""

    def test_equal_ratings_gives_half(self):
        """Equal ratings should give expected score of 0.5."""
        assert expected_score(1200, 1200) == pytest.approx(0.5)

    def test_higher_rating_gives_higher_expected(self):
        result = expected_score(1400, 1200)
        assert 0.5 < result < 1.0

    def test_400_point_difference(self):
        """400 point difference gives ~0.91 expected score."""
        assert expected_score(1600, 1200) == pytest.approx(0.909, rel=0.01)

    @given(
        rating_a=st.floats(min_value=100, max_value=3000),
        rating_b=st.floats(min_value=100, max_value=3000)
    )
    @settings(max_examples=100)
    def test_expected_scores_sum_to_one(self, rating_a, rating_b):
        """Property test: expected scores always sum to 1."""
        e1 = expected_score(rating_a, rating_b)
        e2 = expected_score(rating_b, rating_a)
        assert e1 + e2 == pytest.approx(1.0)


class TestComputeUpdate:
    """Tests for compute_update function."""

    def test_base_scores(self):
        """Two unrated groups move 16 points each way."""
        assert compute_update(1200, 1200, 32) == (1216, 1184)

    def test_defaults_match_base_and_k(self):
        assert compute_update() == (1216, 1184)

    def test_results_are_ints(self):
        new_winner, new_loser = compute_update(1234.4, 1187.9)
        assert isinstance(new_winner, int)
        assert isinstance(new_loser, int)

    def test_upset_gives_larger_change(self):
        """Lower rated winner gains more than half the k-factor."""
        new_winner, _ = compute_update(1100, 1300)
        assert new_winner - 1100 > 16

    def test_favourite_gains_little(self):
        new_winner, new_loser = compute_update(1600, 1200)
        assert 0 < new_winner - 1600 < 5
        assert 0 < 1200 - new_loser < 5

    def test_k_factor_affects_magnitude(self):
        low, _ = compute_update(1200, 1200, k=16)
        high, _ = compute_update(1200, 1200, k=64)
        assert low == 1208
        assert high == 1232

    def test_odd_k_rounds_halves_up(self):
        """Half points round towards the higher score on both sides."""
        assert compute_update(1200, 1200, k=33) == (1217, 1184)
        assert compute_update(1200, 1200, k=1) == (1201, 1200)

    @given(
        winner=st.integers(min_value=500, max_value=2500),
        loser=st.integers(min_value=500, max_value=2500),
        bump=st.integers(min_value=0, max_value=500),
    )
    @settings(max_examples=200)
    def test_monotonic_in_loser_score(self, winner, loser, bump):
        """Property test: a stronger loser never lowers the winner's new score."""
        weaker, _ = compute_update(winner, loser)
        stronger, _ = compute_update(winner, loser + bump)
        assert stronger >= weaker

    @given(
        winner=st.integers(min_value=500, max_value=2500),
        loser=st.integers(min_value=500, max_value=2500),
    )
    @settings(max_examples=100)
    def test_winner_never_loses_points(self, winner, loser):
        new_winner, new_loser = compute_update(winner, loser)
        assert new_winner >= winner
        assert new_loser <= loser

    @given(
        winner=st.integers(min_value=500, max_value=2500),
        loser=st.integers(min_value=500, max_value=2500),
    )
    @settings(max_examples=100)
    def test_total_roughly_conserved(self, winner, loser):
        """Property test: only rounding can change the total."""
        new_winner, new_loser = compute_update(winner, loser)
        assert abs((new_winner + new_loser) - (winner + loser)) <= 1
