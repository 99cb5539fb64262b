"""
Kouban Pipelines Module

Main Pipeline:
- BreakdownPipeline: script text -> scene breakdown table
  - segment:     bounded chunks, split at scene markers
  - roster_scan: prefix prescan for character hints and the script gate
  - extract:     batched, retried per-chunk oracle calls
  - merge:       scene dedup and character identity reconciliation
  - normalize:   time codes, content caps, presence matrix
"""

from .base_pipeline import BasePipeline, PipelineResult, PipelineStatus, PipelineStep
from .breakdown_pipeline import BreakdownPipeline, breakdown_script
from .extraction_orchestrator import (
    ChunkState,
    ChunkTask,
    ExtractionOrchestrator,
    OrchestrationReport,
)
from .models import (
    BreakdownTable,
    Character,
    ExtractionResult,
    MergedScene,
    MergedTable,
    NormalizedScene,
    canonical_key,
    parse_character,
)
from .normalizer import Normalizer, build_presence, classify_time_of_day, truncate_content
from .result_merger import ResultMerger, merge_results
from .roster_scanner import RosterScan, RosterScanner, SkeletonScene

__all__ = [
    'BasePipeline',
    'PipelineResult',
    'PipelineStatus',
    'PipelineStep',
    'BreakdownPipeline',
    'breakdown_script',
    'ChunkState',
    'ChunkTask',
    'ExtractionOrchestrator',
    'OrchestrationReport',
    'BreakdownTable',
    'Character',
    'ExtractionResult',
    'MergedScene',
    'MergedTable',
    'NormalizedScene',
    'canonical_key',
    'parse_character',
    'Normalizer',
    'build_presence',
    'classify_time_of_day',
    'truncate_content',
    'ResultMerger',
    'merge_results',
    'RosterScan',
    'RosterScanner',
    'SkeletonScene',
]
