"""
Kouban Pipeline Models

Data classes shared by the merge and normalize stages, plus the identity
rules for characters and scenes.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from kouban.core.constants import DEFAULT_EPISODE, TIME_CODE_LABELS, TimeCode
from kouban.llm.schemas import OraclePayload, RawScene
from kouban.utils.unicode_utils import normalize_label

# 田中(25) / 田中（２５歳） / Tanaka (25)
AGE_ANNOTATION_PATTERN = re.compile(r'^(?P<name>.+?)\s*\(\s*(?P<age>\d+)\s*(?:歳|才)?\s*\)$')

EPISODE_PATTERN = re.compile(r'^(?:第|EP\.?|#)?\s*(?P<number>\d+)\s*(?:話|回)?$', re.IGNORECASE)
SCENE_NUMBER_PATTERN = re.compile(r'^(?:シーン|S|#)?\s*(?P<number>\d+)$', re.IGNORECASE)
COMBINED_LABEL_PATTERN = re.compile(r'^(?P<episode>[^-_\s]+)\s*[-_]\s*(?P<scene>\S+)$')
NUMERIC_PATTERN = re.compile(r'^\d+(?:\.\d+)?$')

SceneKey = Tuple[str, str]


# =============================================================================
# CHARACTERS
# =============================================================================

@dataclass(frozen=True)
class Character:
    """A character name with an optional age annotation."""
    raw: str
    name: str
    age: Optional[str] = None

    @property
    def canonical_key(self) -> str:
        """Base name, or base name + age when an age annotation is present."""
        if self.age is not None:
            return f"{self.name}({self.age})"
        return self.name


def parse_character(raw: str) -> Optional[Character]:
    """Parse a raw name string; returns None for blank names."""
    label = normalize_label(raw or "")
    if not label:
        return None
    match = AGE_ANNOTATION_PATTERN.match(label)
    if match:
        return Character(raw=raw, name=match.group("name").strip(), age=str(int(match.group("age"))))
    return Character(raw=raw, name=label)


def canonical_key(raw: str) -> Optional[str]:
    """Canonical identity key for a raw name, or None for blank names."""
    character = parse_character(raw)
    return character.canonical_key if character else None


# =============================================================================
# SCENE IDENTITY
# =============================================================================

def normalize_episode(value: Optional[str]) -> str:
    """Episode label; defaults to "1" when absent."""
    label = normalize_label(value or "")
    if not label:
        return DEFAULT_EPISODE
    match = EPISODE_PATTERN.match(label)
    return str(int(match.group("number"))) if match else label


def normalize_scene_number(value: Optional[str]) -> Optional[str]:
    """Scene number label, or None when absent."""
    label = normalize_label(value or "")
    if not label:
        return None
    match = SCENE_NUMBER_PATTERN.match(label)
    return str(int(match.group("number"))) if match else label


def split_scene_label(label: str) -> Tuple[Optional[str], Optional[str]]:
    """Split a combined "episode-scene" label such as "2-15"."""
    label = normalize_label(label or "")
    if not label:
        return None, None
    match = COMBINED_LABEL_PATTERN.match(label)
    if match:
        return match.group("episode"), match.group("scene")
    return None, label


def scene_key(raw: RawScene) -> Optional[SceneKey]:
    """Identity key (episode, scene_number) of a raw scene, or None."""
    episode = raw.episode
    number = raw.scene_number
    if number is None and raw.scene:
        label_episode, number = split_scene_label(raw.scene)
        episode = episode or label_episode
    number = normalize_scene_number(number)
    if number is None:
        return None
    return normalize_episode(episode), number


def label_sort_key(label: str) -> Tuple[int, float, str]:
    """Numbers sort numerically and before non-numeric labels."""
    if NUMERIC_PATTERN.match(label):
        return (0, float(label), label)
    return (1, 0.0, label)


# =============================================================================
# EXTRACTION RESULTS
# =============================================================================

@dataclass(frozen=True)
class ExtractionResult:
    """Output of one successful chunk extraction call."""
    chunk_index: int
    is_script: bool
    characters: Tuple[str, ...] = ()
    scenes: Tuple[RawScene, ...] = ()
    error_message: Optional[str] = None

    @classmethod
    def from_payload(cls, chunk_index: int, payload: OraclePayload) -> 'ExtractionResult':
        return cls(
            chunk_index=chunk_index,
            is_script=payload.is_script,
            characters=tuple(payload.characters),
            scenes=tuple(payload.scenes),
            error_message=payload.error_message
        )


# =============================================================================
# MERGED / NORMALIZED TABLES
# =============================================================================

@dataclass(frozen=True)
class MergedScene:
    """A deduplicated scene with canonical character keys."""
    episode: str
    scene_number: str
    location: str = ""
    time_of_day: str = ""
    content: str = ""
    characters: Tuple[str, ...] = ()
    props: str = ""
    notes: str = ""
    source_chunk: int = 0

    @property
    def key(self) -> SceneKey:
        return (self.episode, self.scene_number)

    @property
    def sort_key(self) -> Tuple:
        return (label_sort_key(self.episode), label_sort_key(self.scene_number))


@dataclass
class MergedTable:
    """Sorted roster and sorted, deduplicated scenes."""
    characters: List[str] = field(default_factory=list)
    scenes: List[MergedScene] = field(default_factory=list)


@dataclass
class NormalizedScene:
    """One row of the breakdown table."""
    episode: str
    scene_number: str
    location: str
    time_of_day: str
    time_code: TimeCode
    content: str
    characters: Dict[str, bool]
    props: str = ""
    notes: str = ""

    @property
    def scene(self) -> str:
        """Display label in "episode-scene" form."""
        return f"{self.episode}-{self.scene_number}"

    @property
    def time_label(self) -> str:
        return TIME_CODE_LABELS[self.time_code]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene": self.scene,
            "episode": self.episode,
            "scene_number": self.scene_number,
            "location": self.location,
            "timeOfDay": self.time_code.value,
            "timeOfDayLabel": self.time_label,
            "time_of_day_raw": self.time_of_day,
            "content": self.content,
            "characters": dict(self.characters),
            "props": self.props,
            "notes": self.notes,
        }


@dataclass
class BreakdownTable:
    """Final breakdown: roster columns and one row per scene."""
    characters: List[str] = field(default_factory=list)
    scenes: List[NormalizedScene] = field(default_factory=list)

    def presence_is_complete(self) -> bool:
        """Every row carries exactly one entry per roster character."""
        return all(list(scene.characters) == self.characters for scene in self.scenes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "characters": list(self.characters),
            "scenes": [scene.to_dict() for scene in self.scenes],
        }
