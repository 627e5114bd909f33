"""
Prediction Engine Tests

SCORING UNDER TEST:
===================
score = 0.25 f + 0.45 t + 0.30 m, m falling back to f when no
transition from the most recent result can be observed.
"""

import pytest
from hypothesis import given, settings, strategies as st

from prediction.engine import (
    ConfidenceTier, PredictionEngine, to_probability,
)
from prediction.history import HistoryEntry
from prediction.registry import DEFAULT_REGISTRY

from tests.fixtures import NEWEST_DAY, history_of

codes = st.sampled_from([a.code for a in DEFAULT_REGISTRY])


class TestStatistics:

    @given(st.lists(codes, min_size=1, max_size=200))
    @settings(max_examples=50)
    def test_frequencies_sum_to_one(self, history_codes):
        stats = PredictionEngine(history_of(history_codes)).statistics
        assert sum(stats.frequency.values()) == pytest.approx(1.0)

    def test_single_entry_markov_falls_back_to_frequency(self):
        stats = PredictionEngine(history_of(["07"])).statistics
        assert stats.markov is None
        for animal in DEFAULT_REGISTRY:
            assert stats.transition(animal.id) == stats.frequency[animal.id]

    def test_no_observed_transition_falls_back_to_frequency(self):
        # most recent "03" never appeared earlier, so nothing followed it
        stats = PredictionEngine(history_of(["03", "04", "04"])).statistics
        assert stats.markov is None
        assert stats.transition("04") == pytest.approx(2 / 3)

    def test_markov_counts_followers_of_last_result(self):
        # chronological: 05 12 05 20 05 (newest last)
        stats = PredictionEngine(history_of(["05", "20", "05", "12", "05"])).statistics
        assert stats.markov["12"] == pytest.approx(0.5)
        assert stats.markov["20"] == pytest.approx(0.5)
        assert stats.markov["05"] == 0.0

    def test_trend_uses_effective_window_length(self):
        stats = PredictionEngine(history_of(["07"] * 10)).statistics
        # every window sees only 10 entries, all "07"
        assert stats.trend["07"] == pytest.approx(0.40 + 0.35 + 0.25)

    def test_trend_weights_recent_window(self):
        history = ["01"] * 20 + ["02"] * 40
        stats = PredictionEngine(history_of(history)).statistics
        assert stats.trend["01"] == pytest.approx(0.40 * 1.0 + 0.35 * (20 / 60) + 0.25 * (20 / 60))
        assert stats.trend["02"] == pytest.approx(0.35 * (40 / 60) + 0.25 * (40 / 60))

    def test_unresolved_entries_excluded(self):
        history = history_of(["05", "12"]) + (
            HistoryEntry(date=NEWEST_DAY, slot="08:00", animal=None, raw_text="??"),
        )
        engine = PredictionEngine(history)
        assert len(engine.history) == 2


class TestRanking:

    def test_empty_history_yields_nothing(self):
        assert PredictionEngine(()).top_predictions(5) == []

    def test_alternating_history_predicts_the_follower(self):
        """A(05)/B(12) alternating, most recent A: B must rank first."""
        history = history_of(["05", "12"] * 10)
        top = PredictionEngine(history).top_predictions(2)

        assert [p.animal.code for p in top] == ["12", "05"]
        assert top[0].confidence == ConfidenceTier.HIGH
        assert top[0].probability > top[1].probability

    def test_ties_keep_registry_order(self):
        top = PredictionEngine(history_of(["10"])).top_predictions(3)
        assert [p.animal.code for p in top] == ["10", "00", "01"]

    def test_truncation(self):
        engine = PredictionEngine(history_of(["01", "02", "03"]))
        assert len(engine.top_predictions(2)) == 2
        assert engine.top_predictions(0) == []
        assert len(engine.top_predictions(100)) == len(DEFAULT_REGISTRY)

    def test_only_first_max_history_entries_count(self):
        history = history_of(["01"] * 3 + ["02"] * 10)
        engine = PredictionEngine(history, max_history=3)
        assert engine.statistics.frequency["01"] == 1.0
        assert engine.statistics.frequency["02"] == 0.0

    @given(st.lists(codes, min_size=1, max_size=120))
    @settings(max_examples=50)
    def test_ranking_is_descending_and_bounded(self, history_codes):
        top = PredictionEngine(history_of(history_codes)).top_predictions(10)
        probabilities = [p.probability for p in top]
        assert probabilities == sorted(probabilities, reverse=True)
        assert all(0.0 <= p <= 100.0 for p in probabilities)

    def test_rationale_is_descriptive(self):
        top = PredictionEngine(history_of(["05", "12"] * 10)).top_predictions(1)
        assert "transition" in top[0].rationale.lower()


class TestProbabilityAndTiers:

    @pytest.mark.parametrize("score,expected", [
        (0.5, 50.0),
        (0.0625, 6.3),
        (0.12345, 12.3),
        (0.0, 0.0),
    ])
    def test_half_up_rounding(self, score, expected):
        assert to_probability(score) == expected

    @pytest.mark.parametrize("score,tier", [
        (0.0901, ConfidenceTier.HIGH),
        (0.09, ConfidenceTier.MEDIUM),
        (0.0501, ConfidenceTier.MEDIUM),
        (0.05, ConfidenceTier.LOW),
        (0.0, ConfidenceTier.LOW),
    ])
    def test_confidence_thresholds_are_strict(self, score, tier):
        assert ConfidenceTier.for_score(score) is tier

    def test_result_serialization(self):
        result = PredictionEngine(history_of(["05"])).top_predictions(1)[0]
        data = result.to_dict()
        assert data["code"] == "05"
        assert data["name"] == "León"
        assert data["confidence"] in {"HIGH", "MEDIUM", "LOW"}
