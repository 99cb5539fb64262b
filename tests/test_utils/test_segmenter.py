"""
Tests for Segmenter Module

Tests for kouban/utils/segmenter.py
"""

import pytest

from kouban.core.exceptions import InputEmptyError
from kouban.utils.segmenter import (
    Chunk,
    ScriptSegmenter,
    find_scene_boundaries,
    segment_text,
)


def reconstruct(chunks):
    return "".join(chunk.body for chunk in chunks)


class TestSceneBoundaries:
    """Tests for scene marker detection."""

    def test_circle_marks(self, sample_script):
        """Test ○ headings are boundaries."""
        boundaries = find_scene_boundaries(sample_script)

        assert len(boundaries) == 5
        assert all(sample_script[offset] == "○" for offset in boundaries)

    @pytest.mark.parametrize("heading", [
        "○公園",
        "◯ 公園",
        "シーン12 公園",
        "#3 公園",
        "S12 公園",
        "12 病院",
        "１２．病院",
        "INT. HOSPITAL - NIGHT",
        "EXT. PARK - DAY",
        "\u3000○公園",
    ])
    def test_marker_styles(self, heading):
        text = "前の行\n" + heading + "\n本文\n"

        assert find_scene_boundaries(text) == [len("前の行\n")]

    def test_dialogue_is_not_a_boundary(self):
        text = "田中「12時に会おう」\n佐藤が頷く。\n"

        assert find_scene_boundaries(text) == []


class TestScriptSegmenter:
    """Tests for ScriptSegmenter."""

    def test_single_chunk_when_small(self, sample_script):
        chunks = ScriptSegmenter(8000).segment(sample_script)

        assert len(chunks) == 1
        assert chunks[0].text == sample_script
        assert chunks[0].start == 0
        assert chunks[0].end == len(sample_script)

    @pytest.mark.parametrize("size", [15, 40, 60, 100])
    def test_reconstruction(self, sample_script, size):
        """Test concatenating chunk bodies reproduces the input exactly."""
        chunks = ScriptSegmenter(size).segment(sample_script)

        assert reconstruct(chunks) == sample_script
        assert all(len(chunk.body) <= size for chunk in chunks)
        assert [chunk.index for chunk in chunks] == list(range(len(chunks)))

    def test_offsets_are_contiguous(self, sample_script):
        chunks = ScriptSegmenter(40).segment(sample_script)

        for previous, current in zip(chunks, chunks[1:]):
            assert previous.end == current.start
        assert chunks[-1].end == len(sample_script)

    def test_deterministic(self, sample_script):
        """Test identical input and settings give identical chunks."""
        first = ScriptSegmenter(40, 10).segment(sample_script)
        second = ScriptSegmenter(40, 10).segment(sample_script)

        assert first == second

    def test_prefers_scene_boundaries(self):
        """Test chunks start at scene headings when the scenes fit."""
        scene_a = "○1 公園\n" + "田中が歩く。\n" * 3
        scene_b = "○2 駅\n" + "佐藤が走る。\n" * 3
        text = scene_a + scene_b

        chunks = ScriptSegmenter(len(scene_a) + 5).segment(text)

        assert [chunk.body for chunk in chunks] == [scene_a, scene_b]

    def test_oversized_scene_splits_at_lines(self):
        line = "田中が歩く。\n"
        text = "○1 公園\n" + line * 20

        chunks = ScriptSegmenter(30).segment(text)

        assert reconstruct(chunks) == text
        assert all(chunk.body.endswith("\n") for chunk in chunks)

    def test_oversized_line_splits_at_offsets(self):
        """Test a single line longer than the limit is cut at raw offsets."""
        text = "あ" * 95

        chunks = ScriptSegmenter(30).segment(text)

        assert [len(chunk.body) for chunk in chunks] == [30, 30, 30, 5]
        assert reconstruct(chunks) == text

    def test_overlap_prefix(self):
        """Test later chunks repeat the tail of their predecessor."""
        text = "○1 公園\n" + "a" * 30 + "\n○2 駅\n" + "b" * 30 + "\n"

        chunks = ScriptSegmenter(40, 5).segment(text)

        assert chunks[0].overlap == 0
        for previous, current in zip(chunks, chunks[1:]):
            assert current.overlap == 5
            assert current.text[:5] == previous.text[-5:]
        assert reconstruct(chunks) == text

    def test_overlap_shorter_than_previous_body(self):
        chunk_bodies = ScriptSegmenter(10, 8).segment("abc\n" + "x" * 10)

        assert chunk_bodies[1].overlap == 4
        assert chunk_bodies[1].text == "abc\n" + "x" * 10

    def test_overlap_reaches_into_previous_overlap(self):
        """Test a short body borrows overlap from its predecessor's own prefix."""
        text = "○1 aaaaaaa○2\n○3 ccccccc"

        chunks = ScriptSegmenter(10, 8).segment(text)

        assert [chunk.body for chunk in chunks] == ["○1 aaaaaaa", "○2\n", "○3 ccccccc"]
        assert chunks[1].text == " aaaaaaa○2\n"
        assert chunks[2].overlap == 8
        assert chunks[2].text == "aaaaa○2\n○3 ccccccc"
        assert reconstruct(chunks) == text

    def test_empty_text_raises(self):
        with pytest.raises(InputEmptyError):
            ScriptSegmenter(100).segment("")

    @pytest.mark.parametrize("size,overlap", [(0, 0), (10, 10), (10, -1)])
    def test_invalid_settings(self, size, overlap):
        with pytest.raises(ValueError):
            ScriptSegmenter(size, overlap)

    def test_segment_text_wrapper(self, sample_script):
        chunks = segment_text(sample_script, 40)

        assert all(isinstance(chunk, Chunk) for chunk in chunks)
        assert reconstruct(chunks) == sample_script
