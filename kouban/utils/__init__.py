"""
Kouban Utilities Module

Text segmentation and Unicode helpers.
"""

from .segmenter import Chunk, ScriptSegmenter, find_scene_boundaries, segment_text
from .unicode_utils import normalize_text, clean_unicode, normalize_label

__all__ = [
    'Chunk',
    'ScriptSegmenter',
    'find_scene_boundaries',
    'segment_text',
    'normalize_text',
    'clean_unicode',
    'normalize_label',
]
