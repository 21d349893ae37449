from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from exercise_resolution.normalization import display_name, normalize, singularize, tokenize


class TestNormalize:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("mountain_climbers", "mountain climber"),
            ("Push-Ups", "push up"),
            ("pushups", "push up"),
            ("push ups", "push up"),
            ("  Jumping   JACKS ", "jumping jack"),
            ("Star Jumps", "jumping jack"),
            ("press-ups", "push up"),
            ("DB Bench Press", "dumbbell bench press"),
            ("Bodyweight squats", "body weight squat"),
            ("Crème brûlée", "creme brulee"),
            ("sit-ups", "sit up"),
            ("walking_lunges", "walking lunge"),
        ],
    )
    def test_examples(self, raw, expected):
        assert normalize(raw) == expected

    def test_empty_and_separator_only(self):
        assert normalize("") == ""
        assert normalize("--__  ") == ""

    @given(st.text())
    @settings(max_examples=300)
    def test_idempotent(self, raw):
        once = normalize(raw)
        assert normalize(once) == once

    @given(st.text())
    def test_output_is_lowercase_ascii_single_spaced(self, raw):
        out = normalize(raw)
        assert out == out.strip()
        assert "  " not in out
        assert all(ch == " " or ch.isdigit() or "a" <= ch <= "z" for ch in out)


class TestSingularize:
    @pytest.mark.parametrize(
        "token,expected",
        [
            ("climbers", "climber"),
            ("presses", "press"),
            ("stretches", "stretch"),
            ("boxes", "box"),
            ("flies", "fly"),
            ("lunges", "lunge"),
            ("press", "press"),
            ("abs", "abs"),
            ("biceps", "biceps"),
            ("triceps", "triceps"),
            ("plus", "plus"),
            ("legs", "leg"),
        ],
    )
    def test_rules(self, token, expected):
        assert singularize(token) == expected


def test_tokenize_drops_stopwords_and_duplicates():
    assert tokenize("Push-ups on the floor with a push") == ("push", "up", "floor")


def test_display_name_titles_without_singularizing():
    assert display_name("dynamic_elevators") == "Dynamic Elevators"
    assert display_name("  side--shuffles ") == "Side Shuffles"
    assert display_name("___") == "Exercise"
