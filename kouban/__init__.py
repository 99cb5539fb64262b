"""
Kouban - Screenplay Scene Breakdown Generator

Turns a long screenplay into a scene-by-scene breakdown table (location,
time of day, summary, character presence, props, notes) by chunking the
text, running bounded-concurrency extraction calls against an LLM oracle,
and merging the results deterministically.

Version: 1.0.0
"""

__version__ = "1.0.0"
__project__ = "Kouban"

from pathlib import Path

# Load environment variables early - before anything reads API keys
from kouban.core.env_loader import ensure_env_loaded
ensure_env_loaded()

PACKAGE_ROOT = Path(__file__).parent
PROJECT_ROOT = PACKAGE_ROOT.parent

from .pipelines import BreakdownPipeline, BreakdownTable, breakdown_script

__all__ = [
    "__version__",
    "__project__",
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
    "BreakdownPipeline",
    "BreakdownTable",
    "breakdown_script",
]
