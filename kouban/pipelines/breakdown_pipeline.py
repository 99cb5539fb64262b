"""
Kouban Breakdown Pipeline

Script text in, breakdown table out:

    segment -> roster_scan -> extract -> merge -> normalize

Failures are captured in the PipelineResult; ``breakdown_script`` is the
raising counterpart for callers that prefer exceptions.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from kouban.core.config import KoubanConfig, PipelineConfig, get_config
from kouban.core.exceptions import InputEmptyError
from kouban.core.logging_config import get_logger
from kouban.core.retry import RetryConfig
from kouban.llm.oracle import ExtractionOracle, create_oracle
from kouban.pipelines.base_pipeline import BasePipeline, PipelineResult, PipelineStep
from kouban.pipelines.extraction_orchestrator import (
    ExtractionOrchestrator,
    OrchestrationReport,
    ProgressCallback,
)
from kouban.pipelines.models import BreakdownTable, MergedTable
from kouban.pipelines.normalizer import Normalizer
from kouban.pipelines.result_merger import ResultMerger
from kouban.pipelines.roster_scanner import RosterScan, RosterScanner
from kouban.utils.segmenter import Chunk, ScriptSegmenter

logger = get_logger("pipelines.breakdown")


class BreakdownPipeline(BasePipeline[str, BreakdownTable]):
    """Chunked extraction and merge pipeline for screenplay breakdowns."""

    def __init__(
        self,
        oracle: ExtractionOracle,
        config: Optional[PipelineConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the pipeline.

        Args:
            oracle: Extraction oracle shared by the prescan and every chunk call
            config: Pipeline settings (defaults to the global config); validated
                when the run starts
            progress_callback: Called with (completed, total) as chunks settle
            clock: Monotonic time source for the run deadline
        """
        self.oracle = oracle
        self.config = config or get_config().pipeline
        self.progress_callback = progress_callback
        self._clock = clock
        super().__init__("breakdown")

    def _define_steps(self) -> None:
        self._steps = [
            PipelineStep("segment", "Split the script into bounded chunks"),
            PipelineStep("roster_scan", "Prescan the opening for roster and gate"),
            PipelineStep("extract", "Extract scenes from every chunk"),
            PipelineStep("merge", "Deduplicate scenes and reconcile names"),
            PipelineStep("normalize", "Time codes, content caps, presence matrix"),
        ]

    @property
    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay,
            max_delay=self.config.retry_max_delay
        )

    async def _execute_step(
        self,
        step: PipelineStep,
        input_data: Any,
        context: Dict[str, Any]
    ) -> Any:
        if step.name == "segment":
            return self._segment(input_data, context)
        if step.name == "roster_scan":
            return await self._roster_scan(input_data, context)
        if step.name == "extract":
            return await self._extract(input_data, context)
        if step.name == "merge":
            return self._merge(input_data, context)
        if step.name == "normalize":
            return self._normalize(input_data, context)
        raise ValueError(f"Unknown step: {step.name}")

    def _segment(self, text: str, context: Dict[str, Any]) -> List[Chunk]:
        self.config.validate()
        if self.config.deadline_seconds:
            context["deadline"] = self._clock() + self.config.deadline_seconds
        if not text or not text.strip():
            raise InputEmptyError()
        context["text"] = text
        segmenter = ScriptSegmenter(self.config.chunk_size, self.config.chunk_overlap)
        chunks = segmenter.segment(text)
        context["chunks_total"] = len(chunks)
        return chunks

    async def _roster_scan(self, chunks: List[Chunk], context: Dict[str, Any]) -> List[Chunk]:
        scanner = RosterScanner(
            self.oracle,
            sample_size=self.config.roster_sample_size,
            retry_config=self.retry_config,
            deadline=context.get("deadline"),
            clock=self._clock
        )
        context["roster"] = await scanner.scan(context["text"])
        return chunks

    async def _extract(self, chunks: List[Chunk], context: Dict[str, Any]):
        roster: RosterScan = context["roster"]
        orchestrator = ExtractionOrchestrator(
            self.oracle,
            batch_size=self.config.batch_size,
            retry_config=self.retry_config,
            progress_callback=self.progress_callback,
            clock=self._clock,
            cancelled=lambda: self.cancel_requested
        )
        report = await orchestrator.run(
            chunks,
            character_hints=roster.characters,
            deadline=context.get("deadline")
        )
        context["report"] = report
        return report.results

    def _merge(self, results, context: Dict[str, Any]) -> MergedTable:
        merged = ResultMerger(self.config.merge_policy).merge(results)
        roster: RosterScan = context["roster"]
        found = {scene.key for scene in merged.scenes}
        context["missing_from_skeleton"] = [
            f"{entry.episode}-{entry.scene_number}"
            for entry in roster.skeleton
            if entry.key not in found
        ]
        return merged

    def _normalize(self, merged: MergedTable, context: Dict[str, Any]) -> BreakdownTable:
        table = Normalizer(self.config.content_max_length).normalize(merged)
        if not table.presence_is_complete():
            raise RuntimeError("Presence matrix does not match the roster")
        return table

    def _build_metadata(self, context: Dict[str, Any]) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {}
        if "chunks_total" in context:
            metadata["chunks_total"] = context["chunks_total"]
        roster: Optional[RosterScan] = context.get("roster")
        if roster is not None:
            metadata["roster_size"] = len(roster.characters)
            metadata["roster_degraded"] = roster.degraded
        report: Optional[OrchestrationReport] = context.get("report")
        if report is not None:
            metadata.update(report.to_stats())
        if "missing_from_skeleton" in context:
            metadata["missing_from_skeleton"] = context["missing_from_skeleton"]
        return metadata


async def breakdown_script(
    text: str,
    oracle: Optional[ExtractionOracle] = None,
    config: Optional[KoubanConfig] = None,
    progress_callback: Optional[ProgressCallback] = None
) -> PipelineResult[BreakdownTable]:
    """
    Run the breakdown pipeline and raise on failure.

    Args:
        text: Plain script text
        oracle: Extraction oracle (created from config when omitted)
        config: Full configuration (defaults to the global config)
        progress_callback: Called with (completed, total) as chunks settle

    Returns:
        Completed PipelineResult whose output is the BreakdownTable

    Raises:
        KoubanError: InputEmptyError, NotAScriptError or AllChunksFailedError
    """
    config = config or get_config()
    oracle = oracle or create_oracle(config.llm)
    pipeline = BreakdownPipeline(oracle, config.pipeline, progress_callback)
    result = await pipeline.run(text)
    if not result.success:
        if result.exception is not None:
            raise result.exception
        raise RuntimeError(f"Breakdown did not complete: {result.status.value}")
    return result
