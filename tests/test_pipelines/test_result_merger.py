"""
Tests for Result Merger Module

Tests for kouban/pipelines/result_merger.py
"""

from kouban.core.constants import MergePolicy
from kouban.llm.schemas import RawScene
from kouban.pipelines.models import ExtractionResult
from kouban.pipelines.result_merger import ResultMerger, merge_results


def result(index, scenes, characters=()):
    return ExtractionResult(
        chunk_index=index,
        is_script=True,
        characters=tuple(characters),
        scenes=tuple(RawScene(**scene) for scene in scenes)
    )


class TestSceneDedup:
    """Tests for scene deduplication."""

    def test_longer_content_wins(self):
        """Test the most complete variant of a split scene is kept."""
        short = "a" * 11
        long = "b" * 49
        results = [
            result(0, [{"episode": "1", "scene_number": "5", "content": short, "location": "駅"}]),
            result(1, [{"episode": "1", "scene_number": "5", "content": long, "location": "駅前"}]),
        ]

        merged = merge_results(results)

        assert len(merged.scenes) == 1
        assert merged.scenes[0].content == long
        assert merged.scenes[0].location == "駅前"

    def test_tie_keeps_earlier_chunk(self):
        results = [
            result(1, [{"scene_number": "5", "content": "later"}]),
            result(0, [{"scene_number": "5", "content": "early"}]),
        ]

        merged = merge_results(results)

        assert merged.scenes[0].content == "early"
        assert merged.scenes[0].source_chunk == 0

    def test_normalized_keys_collide(self):
        """Test '1'/'第1話' and '5'/'S5' refer to the same scene."""
        results = [
            result(0, [{"episode": "1", "scene_number": "5", "content": "x"}]),
            result(1, [{"episode": "第1話", "scene_number": "S5", "content": "xy"}]),
        ]

        assert len(merge_results(results).scenes) == 1

    def test_scene_without_number_dropped(self):
        merged = merge_results([result(0, [{"location": "公園", "content": "x", "characters": ["田中"]}])])

        assert merged.scenes == []
        assert merged.characters == ["田中"]


class TestCharacterMerge:
    """Tests for roster reconciliation."""

    def test_age_annotations_stay_distinct(self):
        merged = merge_results([
            result(0, [], characters=["Tanaka", "Tanaka(25)"]),
            result(1, [], characters=["Tanaka(13)"]),
        ])

        assert merged.characters == ["Tanaka", "Tanaka(13)", "Tanaka(25)"]

    def test_duplicate_names_collapse(self):
        merged = merge_results([
            result(0, [], characters=["Sato"]),
            result(1, [], characters=["Sato"]),
        ])

        assert merged.characters == ["Sato"]

    def test_full_width_variants_collapse(self):
        merged = merge_results([result(0, [], characters=["田中（２５）", "田中(25)"])])

        assert merged.characters == ["田中(25)"]

    def test_scene_characters_join_roster(self):
        merged = merge_results([result(0, [{"scene_number": "1", "characters": ["佐藤"]}])])

        assert merged.characters == ["佐藤"]
        assert merged.scenes[0].characters == ("佐藤",)


class TestMergePolicy:
    """Tests for UNION vs REPLACE."""

    def _variants(self):
        return [
            result(0, [{"scene_number": "1", "content": "short", "characters": ["田中"]}]),
            result(1, [{"scene_number": "1", "content": "much longer", "characters": ["佐藤"]}]),
        ]

    def test_union(self):
        merged = ResultMerger(MergePolicy.UNION).merge(self._variants())

        assert merged.scenes[0].characters == ("佐藤", "田中")

    def test_replace(self):
        merged = ResultMerger(MergePolicy.REPLACE).merge(self._variants())

        assert merged.scenes[0].characters == ("佐藤",)


class TestMergeProperties:
    """Tests for ordering and idempotence."""

    def _results(self):
        return [
            result(2, [{"episode": "2", "scene_number": "1", "content": "c"}]),
            result(0, [
                {"episode": "1", "scene_number": "10", "content": "b"},
                {"episode": "1", "scene_number": "2", "content": "a"},
            ], characters=["田中"]),
            result(1, [{"episode": "1", "scene_number": "2", "content": "aa", "characters": ["佐藤"]}]),
        ]

    def test_sorted_output(self):
        merged = merge_results(self._results())

        assert [scene.key for scene in merged.scenes] == [("1", "2"), ("1", "10"), ("2", "1")]
        assert merged.characters == sorted(merged.characters)

    def test_arrival_order_irrelevant(self):
        results = self._results()

        assert merge_results(results) == merge_results(list(reversed(results)))

    def test_idempotent(self):
        """Test merging a result set with itself changes nothing."""
        results = self._results()

        assert merge_results(results + results) == merge_results(results)
