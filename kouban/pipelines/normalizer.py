"""
Kouban Normalizer

Final shaping of the merged table: fixed time-of-day codes, capped content
summaries and a complete character presence matrix.
"""

import re
from typing import Dict, Iterable, Pattern, Sequence

from kouban.core.constants import (
    DAY_CODES,
    DAY_KEYWORDS,
    DEFAULT_CONTENT_MAX_LENGTH,
    ELLIPSIS,
    NIGHT_CODES,
    NIGHT_KEYWORDS,
    TimeCode,
)
from kouban.core.logging_config import get_logger
from kouban.pipelines.models import BreakdownTable, MergedScene, MergedTable, NormalizedScene
from kouban.utils.unicode_utils import normalize_text

logger = get_logger("pipelines.normalizer")

# Daybreak alone is a day period; 夜明け前 stays night
DAYBREAK_PATTERN = re.compile(r'夜明け(?!前)')


def keyword_pattern(keywords: Sequence[str]) -> Pattern[str]:
    """Alternation of keywords; Latin ones must not touch other letters."""
    alternatives = [
        rf'(?<![A-Z]){re.escape(keyword)}(?![A-Z])' if keyword.isascii() else re.escape(keyword)
        for keyword in keywords
    ]
    return re.compile("|".join(alternatives))


NIGHT_PATTERN = keyword_pattern(NIGHT_KEYWORDS)
DAY_PATTERN = keyword_pattern(DAY_KEYWORDS)


def classify_time_of_day(raw: str) -> TimeCode:
    """
    Map free-form time-of-day text to the fixed code vocabulary.

    Night keywords win over day keywords when both appear. English words
    match whole, so TODAY or MONDAY stay unknown.
    """
    text = normalize_text(raw or "").strip().upper()
    if not text:
        return TimeCode.UNKNOWN

    if text in NIGHT_CODES:
        return TimeCode.NIGHT
    if text in DAY_CODES:
        return TimeCode.DAY

    if NIGHT_PATTERN.search(DAYBREAK_PATTERN.sub("", text)):
        return TimeCode.NIGHT
    if DAY_PATTERN.search(text):
        return TimeCode.DAY
    return TimeCode.UNKNOWN


def truncate_content(text: str, limit: int = DEFAULT_CONTENT_MAX_LENGTH, marker: str = ELLIPSIS) -> str:
    """Cut text longer than ``limit`` characters and append ``marker``."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def build_presence(present: Iterable[str], roster: Sequence[str]) -> Dict[str, bool]:
    """One boolean per roster character, in roster order."""
    present = set(present)
    return {name: name in present for name in roster}


class Normalizer:
    """Turns a MergedTable into the final BreakdownTable."""

    def __init__(self, content_max_length: int = DEFAULT_CONTENT_MAX_LENGTH):
        self.content_max_length = content_max_length

    def normalize(self, merged: MergedTable) -> BreakdownTable:
        roster = list(merged.characters)
        scenes = [self._normalize_scene(scene, roster) for scene in merged.scenes]
        table = BreakdownTable(characters=roster, scenes=scenes)
        logger.debug(f"Normalized {len(scenes)} scene(s) against {len(roster)} roster column(s)")
        return table

    def _normalize_scene(self, scene: MergedScene, roster: Sequence[str]) -> NormalizedScene:
        return NormalizedScene(
            episode=scene.episode,
            scene_number=scene.scene_number,
            location=scene.location,
            time_of_day=scene.time_of_day,
            time_code=classify_time_of_day(scene.time_of_day),
            content=truncate_content(scene.content, self.content_max_length),
            characters=build_presence(scene.characters, roster),
            props=scene.props,
            notes=scene.notes
        )
