"""
Tests for performance scoring: per-position goal values, cards, MOTM, days-played bonus.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from fantasyfive.positions import Position, parse_position
from fantasyfive.scoring import (
    ASSIST_POINTS,
    MOTM_POINTS,
    RED_CARD_POINTS,
    STRAIGHT_RED_POINTS,
    YELLOW_CARD_POINTS,
    PerformanceStats,
    days_played_bonus,
    score_performance,
)


class TestGoalValues:
    def test_defender_goal_is_six(self):
        assert score_performance("Defender", {"goals": 1}).points == 6

    def test_midfielder_goal_is_five(self):
        assert score_performance("Midfielder", {"goals": 1}).points == 5

    def test_forward_goal_is_five(self):
        assert score_performance("Forward", {"goals": 1}).points == 5

    def test_unknown_position_scores_like_midfielder(self):
        assert score_performance("Goalkeeper", {"goals": 2}).points == 10

    def test_position_strings_are_matched_loosely(self):
        assert score_performance("DEF", {"goals": 1}).points == 6
        assert score_performance("centre defender", {"goals": 1}).points == 6
        assert score_performance("FWD", {"goals": 1}).points == 5


class TestEventPoints:
    def test_motm_alone_is_three_for_every_position(self):
        for pos in Position:
            assert score_performance(pos, {"is_motm": True}).points == MOTM_POINTS == 3

    def test_assists(self):
        assert score_performance("Forward", {"assists": 2}).points == 2 * ASSIST_POINTS

    def test_cards(self):
        result = score_performance("Defender", {"yellow_cards": 1, "red_cards": 1, "straight_red": True})
        assert result.points == YELLOW_CARD_POINTS + RED_CARD_POINTS + STRAIGHT_RED_POINTS == -7
        assert result.breakdown["red_cards"] == -3
        assert result.breakdown["straight_red"] == -3

    def test_goals_conceded_and_penalties_missed_score_nothing(self):
        result = score_performance("Defender", {"goals_conceded": 4, "penalties_missed": 2})
        assert result.points == 0

    def test_missing_and_none_stats_count_as_zero(self):
        assert score_performance("Midfielder", {}).points == 0
        assert score_performance("Midfielder", {"goals": None, "assists": None}).points == 0

    def test_string_flags_are_parsed(self):
        assert score_performance("Defender", {"straight_red": "false", "is_motm": "0"}).points == 0
        assert score_performance("Defender", {"straightRed": "no", "isMotm": ""}).points == 0
        assert score_performance("Defender", {"is_motm": "true"}).points == MOTM_POINTS
        assert score_performance("Defender", {"straight_red": "1"}).points == STRAIGHT_RED_POINTS

    def test_unrecognised_flag_string_rejected(self):
        with pytest.raises(ValueError):
            PerformanceStats.from_mapping({"is_motm": "maybe"})

    def test_camel_case_keys_accepted(self):
        result = score_performance("Midfielder", {"isMotm": True, "daysPlayed": 4, "yellowCards": 1})
        assert result.points == 3 + 2 - 1

    def test_breakdown_sums_to_points(self):
        stats = PerformanceStats(goals=2, assists=1, yellow_cards=1, is_motm=True, days_played=5)
        result = score_performance("Defender", stats)
        assert sum(result.breakdown.values()) == result.points == 12 + 3 - 1 + 3 + 2
        assert set(result.breakdown) == {
            "goals", "assists", "yellow_cards", "red_cards", "straight_red", "motm", "days_played",
        }


class TestDaysPlayedBonus:
    @pytest.mark.parametrize("days,bonus", [(0, 0), (1, 1), (3, 1), (4, 2), (10, 2)])
    def test_step_function(self, days, bonus):
        assert days_played_bonus(days) == bonus
        assert score_performance("Forward", {"days_played": days}).points == bonus


class TestParsePosition:
    def test_strict_rejects_unknown(self):
        with pytest.raises(ValueError):
            parse_position("Goalkeeper", strict=True)

    def test_enum_passthrough(self):
        assert parse_position(Position.FORWARD) is Position.FORWARD

    def test_none_falls_back(self):
        assert parse_position(None) is Position.MIDFIELDER
