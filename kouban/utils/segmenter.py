"""
Kouban Segmenter

Splits a script into ordered, bounded-size chunks for extraction. Splits
prefer scene boundaries, fall back to line boundaries, then to raw
character offsets. Chunks after the first may repeat the tail of their
predecessor's full text (its own overlap included) so that scenes cut at
a seam are seen whole at least once.
"""

from dataclasses import dataclass
from typing import List
import re

from kouban.core.exceptions import InputEmptyError
from kouban.core.logging_config import get_logger

logger = get_logger("utils.segmenter")


# Lines that typically open a new scene:
#   ○公園 / ◯公園      Japanese scene mark
#   シーン12           explicit scene label
#   #12 / S12         numbered heading
#   12 病院 / 12．病院  number followed by a location
#   INT. / EXT.       English slugline
SCENE_MARKER_PATTERN = re.compile(
    r'^[ \t\u3000]*(?:'
    r'[○◯●]'
    r'|シーン[ \t\u3000]*[0-9０-９]+'
    r'|[#＃SＳ][ \t\u3000]*[0-9０-９]+'
    r'|[0-9０-９]{1,4}[ \t\u3000.．、:：)）]+\S'
    r'|(?:INT\./EXT|INT|EXT|I/E)[.\s]'
    r')',
    re.MULTILINE
)


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of the source text submitted to one extraction call."""
    index: int
    text: str           # overlap prefix + body, as sent to the oracle
    overlap: int = 0    # leading characters repeated from the previous chunk
    start: int = 0      # body offset in the source text
    end: int = 0

    @property
    def body(self) -> str:
        """The chunk text without the repeated overlap prefix."""
        return self.text[self.overlap:]

    @property
    def length(self) -> int:
        return len(self.text)


class ScriptSegmenter:
    """
    Splits script text into chunks of at most ``max_chunk_size`` characters
    (plus the overlap prefix).

    Concatenating every chunk's ``body`` reproduces the input exactly, and
    the output is deterministic for fixed inputs.
    """

    def __init__(self, max_chunk_size: int, overlap_size: int = 0):
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
        if overlap_size < 0 or overlap_size >= max_chunk_size:
            raise ValueError(
                f"overlap_size must be in [0, {max_chunk_size}), got {overlap_size}"
            )
        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size

    def segment(self, text: str) -> List[Chunk]:
        """
        Split text into chunks.

        Args:
            text: Full script text

        Returns:
            Ordered list of Chunk objects

        Raises:
            InputEmptyError: If text is empty
        """
        if not text:
            raise InputEmptyError("Cannot segment empty text")

        pieces: List[str] = []
        for segment in self.split_scenes(text):
            pieces.extend(self._split_oversized(segment))

        bodies = self._pack(pieces)

        chunks = []
        position = 0
        previous = ""
        for index, body in enumerate(bodies):
            overlap = min(self.overlap_size, len(previous)) if index else 0
            prefix = previous[len(previous) - overlap:] if overlap else ""
            chunks.append(Chunk(
                index=index,
                text=prefix + body,
                overlap=overlap,
                start=position,
                end=position + len(body)
            ))
            position += len(body)
            previous = prefix + body

        logger.info(
            f"Segmented {len(text)} chars into {len(chunks)} chunk(s) "
            f"(max={self.max_chunk_size}, overlap={self.overlap_size})"
        )
        return chunks

    def split_scenes(self, text: str) -> List[str]:
        """Split text at scene-boundary markers, keeping every character."""
        boundaries = find_scene_boundaries(text)
        edges = [0] + [b for b in boundaries if b > 0] + [len(text)]
        return [text[a:b] for a, b in zip(edges, edges[1:]) if b > a]

    def _split_oversized(self, segment: str) -> List[str]:
        """Break a segment that exceeds the chunk size at lines, then offsets."""
        if len(segment) <= self.max_chunk_size:
            return [segment]

        pieces = []
        for line in segment.splitlines(keepends=True):
            if len(line) <= self.max_chunk_size:
                pieces.append(line)
                continue
            for offset in range(0, len(line), self.max_chunk_size):
                pieces.append(line[offset:offset + self.max_chunk_size])
        return pieces

    def _pack(self, pieces: List[str]) -> List[str]:
        """Greedily pack pieces, in order, into bodies of bounded size."""
        bodies = []
        current = ""
        for piece in pieces:
            if current and len(current) + len(piece) > self.max_chunk_size:
                bodies.append(current)
                current = ""
            current += piece
        if current:
            bodies.append(current)
        return bodies


def find_scene_boundaries(text: str) -> List[int]:
    """Return the offsets of lines that open a new scene."""
    return [match.start() for match in SCENE_MARKER_PATTERN.finditer(text)]


def segment_text(text: str, max_chunk_size: int, overlap_size: int = 0) -> List[Chunk]:
    """Convenience wrapper around ScriptSegmenter.segment()."""
    return ScriptSegmenter(max_chunk_size, overlap_size).segment(text)
