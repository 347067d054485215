"""Tests for the achievement evaluator."""
from datetime import datetime, timedelta, timezone

import pytest

from app.utils.achievements import (
    COMEBACK,
    DEFAULT_ACHIEVEMENTS,
    PERFECT_MATCH,
    Achievement,
    AchievementCondition,
    category_emoji,
    count_comebacks,
    count_perfect_matches,
    evaluate_achievements,
    merge_unlocked,
    rarity_border_color,
    rarity_color,
    unlocked_subset,
    with_unlock_times,
)
from app.utils.scoring import ScoringBreakdown
from app.utils.stats import EMPTY_STATISTICS, ScoredPrediction, UserStatistics

NOW = datetime(2024, 9, 1, 12, 0, tzinfo=timezone.utc)


def history_of(*hits):
    start = datetime(2024, 8, 1, tzinfo=timezone.utc)
    return [
        ScoredPrediction(
            match_id=i + 1,
            match_date=start + timedelta(days=i),
            points=1 if h else 0,
            breakdown=ScoringBreakdown(outcome=1 if h else 0),
        )
        for i, h in enumerate(hits)
    ]


def by_id(evaluated):
    return {item.achievement.id: item for item in evaluated}


def custom(kind, threshold):
    return Achievement(
        id=f"custom_{kind}",
        name="Custom",
        description="",
        icon="*",
        category="special",
        rarity="common",
        condition=AchievementCondition(kind, threshold),
    )


class TestCatalog:
    def test_ids_are_unique(self):
        ids = [a.id for a in DEFAULT_ACHIEVEMENTS]
        assert len(ids) == len(set(ids))

    def test_perfect_match_is_not_in_default_catalog(self):
        assert all(a.condition.kind != PERFECT_MATCH for a in DEFAULT_ACHIEVEMENTS)

    def test_unknown_condition_kind_is_rejected(self):
        with pytest.raises(ValueError):
            AchievementCondition("corners", 3)

    def test_unknown_rarity_is_rejected(self):
        with pytest.raises(ValueError):
            Achievement(
                id="x",
                name="X",
                description="",
                icon="*",
                category="special",
                rarity="mythic",
                condition=AchievementCondition("streak", 3),
            )


class TestEvaluateAchievements:
    def test_every_catalog_entry_is_returned_in_order(self):
        evaluated = evaluate_achievements(EMPTY_STATISTICS, [], now=NOW)
        assert [e.achievement.id for e in evaluated] == [
            a.id for a in DEFAULT_ACHIEVEMENTS
        ]
        assert not any(e.is_unlocked for e in evaluated)

    def test_streak_of_seven(self):
        stats = UserStatistics(longest_streak=7)
        evaluated = by_id(evaluate_achievements(stats, [], now=NOW))

        hot = evaluated["hot_streak"]
        assert hot.achievement.name == "Racha Ardiente"
        assert hot.is_unlocked
        assert hot.unlocked_at == NOW

        unstoppable = evaluated["unstoppable"]
        assert unstoppable.achievement.name == "Imparable"
        assert not unstoppable.is_unlocked
        assert (unstoppable.progress, unstoppable.max_progress) == (7, 15)

    @pytest.mark.parametrize("streak, unlocked", [(6, False), (7, True), (8, True)])
    def test_threshold_boundary(self, streak, unlocked):
        stats = UserStatistics(longest_streak=streak)
        hot = by_id(evaluate_achievements(stats, [], now=NOW))["hot_streak"]
        assert hot.is_unlocked is unlocked

    def test_progress_is_capped_at_threshold(self):
        stats = UserStatistics(total_predictions=80)
        evaluated = by_id(evaluate_achievements(stats, [], now=NOW))
        assert evaluated["dedicated"].progress == 50
        assert evaluated["veteran"].progress == 80

    def test_first_correct_prediction_advances_three_tracks(self):
        history = history_of(True)
        stats = UserStatistics(
            total_points=1, total_predictions=1, exact_scores=1, correct_results=1
        )
        evaluated = by_id(evaluate_achievements(stats, history, now=NOW))

        assert evaluated["first_exact"].is_unlocked
        assert evaluated["first_prediction"].is_unlocked
        assert evaluated["first_points"].progress == 1

    def test_custom_catalog_is_injected(self):
        catalog = (custom("total_points", 2),)
        evaluated = evaluate_achievements(UserStatistics(total_points=2), [], catalog, NOW)
        assert len(evaluated) == 1
        assert evaluated[0].is_unlocked


class TestHistoryConditions:
    def test_comeback_needs_five_misses_first(self):
        assert count_comebacks(history_of(False, False, False, False, True)) == 0
        assert count_comebacks(history_of(False, False, False, False, False, True)) == 1

    def test_comeback_depends_on_order(self):
        assert count_comebacks(history_of(True, False, False, False, False, False)) == 0

    def test_comeback_unlocks_achievement(self):
        history = history_of(False, False, False, False, False, True)
        evaluated = by_id(evaluate_achievements(EMPTY_STATISTICS, history, now=NOW))
        assert evaluated["comeback_king"].is_unlocked
        assert evaluated["comeback_king"].achievement.condition.kind == COMEBACK

    def test_outcome_only_breakdowns_are_never_perfect(self):
        assert count_perfect_matches(history_of(True, True)) == 0

    def test_perfect_match_counts_when_every_aspect_scores(self):
        history = [
            ScoredPrediction(
                match_id=1,
                match_date=NOW,
                points=3,
                breakdown=ScoringBreakdown(outcome=1, aspects={"corners": 1, "cards": 1}),
            ),
            ScoredPrediction(
                match_id=2,
                match_date=NOW,
                points=2,
                breakdown=ScoringBreakdown(outcome=1, aspects={"corners": 1, "cards": 0}),
            ),
        ]
        assert count_perfect_matches(history) == 1

        evaluated = evaluate_achievements(
            EMPTY_STATISTICS, history, (custom(PERFECT_MATCH, 1),), NOW
        )
        assert evaluated[0].is_unlocked


class TestPersistedSubset:
    def test_unlocked_subset_has_persisted_fields(self):
        stats = UserStatistics(longest_streak=3)
        subset = unlocked_subset(evaluate_achievements(stats, [], now=NOW))

        assert [item["id"] for item in subset] == ["first_streak"]
        assert subset[0]["unlocked_at"] == NOW.isoformat()
        assert set(subset[0]) == {
            "id",
            "name",
            "description",
            "icon",
            "rarity",
            "unlocked_at",
        }

    def test_merge_keeps_original_unlock_time(self):
        previous = [{"id": "first_streak", "unlocked_at": "2024-01-01T00:00:00+00:00"}]
        current = [
            {"id": "first_streak", "unlocked_at": NOW.isoformat()},
            {"id": "hot_streak", "unlocked_at": NOW.isoformat()},
        ]
        merged, newly_unlocked = merge_unlocked(previous, current)

        assert newly_unlocked == ["hot_streak"]
        assert merged[0]["unlocked_at"] == "2024-01-01T00:00:00+00:00"
        assert merged[1]["unlocked_at"] == NOW.isoformat()

    def test_merge_with_nothing_persisted(self):
        merged, newly_unlocked = merge_unlocked(None, [])
        assert merged == []
        assert newly_unlocked == []

    def test_persisted_unlock_time_replaces_evaluation_time(self):
        stats = UserStatistics(longest_streak=7)
        evaluated = evaluate_achievements(stats, [], now=NOW)
        earlier = "2024-01-01T00:00:00+00:00"
        persisted = [{"id": "first_streak", "unlocked_at": earlier}]

        restored = by_id(with_unlock_times(evaluated, persisted))

        assert restored["first_streak"].unlocked_at == datetime.fromisoformat(earlier)
        assert restored["hot_streak"].unlocked_at == NOW
        assert restored["unstoppable"].unlocked_at is None


class TestDisplayHelpers:
    def test_known_and_unknown_values(self):
        assert "purple" in rarity_color("epic")
        assert "gray" in rarity_color("mythic")
        assert rarity_border_color("legendary") == "border-yellow-300"
        assert category_emoji("streak") == "🔥"
        assert category_emoji("other") == "🏆"
