"""
Kouban Constants

Global constants used throughout the breakdown pipeline.
"""

from enum import Enum
from typing import Dict, Tuple

# =============================================================================
# LLM PROVIDERS
# =============================================================================

class LLMProvider(Enum):
    """Supported extraction oracle providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class OracleMode(Enum):
    """Oracle call modes."""
    PRESCAN = "prescan"   # roster + scene skeleton from a prefix sample
    EXTRACT = "extract"   # detailed per-chunk extraction with hints


# =============================================================================
# MERGE POLICY
# =============================================================================

class MergePolicy(Enum):
    """How character sets combine when two scene variants share a key."""
    UNION = "union"       # winner's set plus every losing variant's set
    REPLACE = "replace"   # winner's set as-is


# =============================================================================
# TIME OF DAY
# =============================================================================

class TimeCode(str, Enum):
    """Fixed time-of-day vocabulary for the breakdown table."""
    NIGHT = "N"
    DAY = "D"
    UNKNOWN = ""


# Night keywords are checked first and win over day keywords. Latin
# keywords match whole words only; 夜明け without 前 counts as day.
NIGHT_KEYWORDS: Tuple[str, ...] = (
    "深夜", "夜明け前", "夜中", "真夜中", "夜", "晩", "宵",
    "MIDNIGHT", "NIGHTTIME", "NIGHT",
)

DAY_KEYWORDS: Tuple[str, ...] = (
    "夜明け", "早朝", "朝", "昼", "日中", "午前", "午後", "夕方", "夕",
    "MORNING", "AFTERNOON", "EVENING", "DAWN", "DUSK", "DAYTIME", "DAY", "NOON",
)

# Single-letter codes the oracle is asked to emit
NIGHT_CODES: Tuple[str, ...] = ("N",)
DAY_CODES: Tuple[str, ...] = ("M", "D", "E")

# Display labels for the breakdown table
TIME_CODE_LABELS: Dict[TimeCode, str] = {
    TimeCode.NIGHT: "夜",
    TimeCode.DAY: "昼",
    TimeCode.UNKNOWN: "",
}

# =============================================================================
# SCENE / CONTENT DEFAULTS
# =============================================================================

DEFAULT_EPISODE = "1"
DEFAULT_CONTENT_MAX_LENGTH = 60
ELLIPSIS = "..."

# =============================================================================
# PIPELINE DEFAULTS
# =============================================================================

DEFAULT_CHUNK_SIZE = 8000
DEFAULT_CHUNK_OVERLAP = 0
DEFAULT_ROSTER_SAMPLE_SIZE = 8000
DEFAULT_BATCH_SIZE = 3
DEFAULT_MAX_RETRIES = 3
