"""
Tests for Normalizer Module

Tests for kouban/pipelines/normalizer.py
"""

import pytest

from kouban.core.constants import TimeCode
from kouban.pipelines.models import MergedScene, MergedTable
from kouban.pipelines.normalizer import (
    Normalizer,
    build_presence,
    classify_time_of_day,
    truncate_content,
)


class TestClassifyTimeOfDay:
    """Tests for time-of-day classification."""

    @pytest.mark.parametrize("raw,expected", [
        ("N", TimeCode.NIGHT),
        ("D", TimeCode.DAY),
        ("M", TimeCode.DAY),
        ("E", TimeCode.DAY),
        ("n", TimeCode.NIGHT),
        ("昼", TimeCode.DAY),
        ("早朝", TimeCode.DAY),
        ("夕方", TimeCode.DAY),
        ("夜", TimeCode.NIGHT),
        ("深夜", TimeCode.NIGHT),
        ("NIGHT", TimeCode.NIGHT),
        ("Day", TimeCode.DAY),
        ("", TimeCode.UNKNOWN),
        (None, TimeCode.UNKNOWN),
        ("不明", TimeCode.UNKNOWN),
    ])
    def test_classification(self, raw, expected):
        assert classify_time_of_day(raw) == expected

    def test_night_wins_over_day(self):
        """Test text naming both a day and a night period is night."""
        assert classify_time_of_day("昼から深夜") == TimeCode.NIGHT
        assert classify_time_of_day("夕方〜夜") == TimeCode.NIGHT

    @pytest.mark.parametrize("raw,expected", [
        ("TODAY", TimeCode.UNKNOWN),
        ("MONDAY", TimeCode.UNKNOWN),
        ("SUNDAY MORNING", TimeCode.DAY),
        ("EXT. PARK - NIGHT", TimeCode.NIGHT),
        ("INT. OFFICE - DAY", TimeCode.DAY),
        ("ｎｉｇｈｔ", TimeCode.NIGHT),
        ("LATE NIGHT", TimeCode.NIGHT),
    ])
    def test_latin_keywords_match_whole_words(self, raw, expected):
        assert classify_time_of_day(raw) == expected

    def test_daybreak(self):
        """Test 夜明け is a day period while 夜明け前 is still night."""
        assert classify_time_of_day("夜明け") == TimeCode.DAY
        assert classify_time_of_day("夜明け前") == TimeCode.NIGHT
        assert classify_time_of_day("夜明けから夜") == TimeCode.NIGHT


class TestTruncateContent:
    """Tests for content capping."""

    def test_long_content_truncated(self):
        text = "あ" * 90

        result = truncate_content(text, 60)

        assert result == "あ" * 60 + "..."

    def test_short_content_unchanged(self):
        text = "い" * 40

        assert truncate_content(text, 60) == text

    def test_exact_limit_unchanged(self):
        assert truncate_content("う" * 60, 60) == "う" * 60


class TestNormalizer:
    """Tests for Normalizer.normalize."""

    def _merged(self):
        return MergedTable(
            characters=["佐藤", "田中", "田中(13)"],
            scenes=[
                MergedScene(episode="1", scene_number="1", time_of_day="深夜",
                            content="か" * 80, characters=("田中",)),
                MergedScene(episode="1", scene_number="2", time_of_day="D",
                            content="short", characters=()),
            ]
        )

    def test_presence_matrix_complete(self):
        """Test each row has exactly one entry per roster character."""
        table = Normalizer().normalize(self._merged())

        assert table.presence_is_complete()
        assert table.scenes[0].characters == {"佐藤": False, "田中": True, "田中(13)": False}
        assert table.scenes[1].characters == {"佐藤": False, "田中": False, "田中(13)": False}

    def test_row_shaping(self):
        table = Normalizer(content_max_length=60).normalize(self._merged())
        first = table.scenes[0]

        assert first.time_code == TimeCode.NIGHT
        assert first.content == "か" * 60 + "..."
        assert first.scene == "1-1"
        assert first.time_label == "夜"
        assert table.scenes[1].time_label == "昼"

    def test_unknown_time_has_empty_label(self):
        merged = MergedTable(
            characters=[],
            scenes=[MergedScene(episode="1", scene_number="1", time_of_day="不明")]
        )

        row = Normalizer().normalize(merged).to_dict()["scenes"][0]

        assert row["timeOfDay"] == ""
        assert row["timeOfDayLabel"] == ""

    def test_to_dict(self):
        row = Normalizer().normalize(self._merged()).to_dict()["scenes"][0]

        assert row["timeOfDay"] == "N"
        assert row["timeOfDayLabel"] == "夜"
        assert row["time_of_day_raw"] == "深夜"
        assert list(row["characters"]) == ["佐藤", "田中", "田中(13)"]

    def test_build_presence_order(self):
        assert list(build_presence(["b"], ["c", "a", "b"]).items()) == [
            ("c", False), ("a", False), ("b", True)
        ]
