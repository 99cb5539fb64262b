"""
Kouban Extraction Orchestrator

Runs one extraction call per chunk under bounded concurrency.

Features:
- Batches of ``batch_size`` chunks run concurrently; the next batch starts
  only once the whole batch has settled
- Per-chunk retry with backoff, tracked by an explicit state machine
- Failed chunks never block or fail their siblings
- Progress reported after every chunk settles
- Optional overall deadline: no new batches or retries once it passes
- Cancellation is checked before each batch
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from itertools import chain
from typing import Callable, Dict, List, Optional, Sequence

from kouban.core.exceptions import (
    AllChunksFailedError,
    NotAScriptError,
    OracleCallError,
    OracleError,
    OracleSchemaError,
)
from kouban.core.logging_config import get_logger
from kouban.core.retry import RetryConfig, calculate_delay
from kouban.llm.oracle import ExtractionOracle
from kouban.llm.response_parser import ResponseKind, parse_oracle_response
from kouban.pipelines.models import ExtractionResult
from kouban.utils.segmenter import Chunk

logger = get_logger("pipelines.orchestrator")

ProgressCallback = Callable[[int, int], None]


class ChunkState(Enum):
    """Lifecycle of one chunk's extraction."""
    PENDING = "pending"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"    # retries used up, or a non-retryable error
    SKIPPED = "skipped"        # oracle says this chunk is not script content
    ABANDONED = "abandoned"    # never started: deadline passed or run cancelled


_TRANSITIONS = {
    ChunkState.PENDING: {ChunkState.ATTEMPTING, ChunkState.ABANDONED},
    ChunkState.ATTEMPTING: {
        ChunkState.SUCCEEDED,
        ChunkState.RETRYING,
        ChunkState.EXHAUSTED,
        ChunkState.SKIPPED,
    },
    ChunkState.RETRYING: {ChunkState.ATTEMPTING},
    ChunkState.SUCCEEDED: set(),
    ChunkState.EXHAUSTED: set(),
    ChunkState.SKIPPED: set(),
    ChunkState.ABANDONED: set(),
}


@dataclass
class ChunkTask:
    """Mutable per-chunk bookkeeping for one orchestration run."""
    chunk: Chunk
    state: ChunkState = ChunkState.PENDING
    attempts: int = 0
    errors: List[str] = field(default_factory=list)
    result: Optional[ExtractionResult] = None
    skip_reason: Optional[str] = None
    abandon_reason: Optional[str] = None

    def transition(self, new_state: ChunkState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal state transition for chunk {self.chunk.index}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    @property
    def settled(self) -> bool:
        return not _TRANSITIONS[self.state]

    @property
    def failure_reason(self) -> Optional[str]:
        if self.state == ChunkState.EXHAUSTED:
            return self.errors[-1] if self.errors else "exhausted"
        if self.state == ChunkState.SKIPPED:
            return f"not a script: {self.skip_reason}"
        if self.state == ChunkState.ABANDONED:
            return f"not attempted: {self.abandon_reason}"
        return None


@dataclass
class OrchestrationReport:
    """Outcome of an orchestration run."""
    results: List[ExtractionResult]
    tasks: List[ChunkTask]
    completed: int = 0

    @property
    def total(self) -> int:
        return len(self.tasks)

    def indices(self, state: ChunkState) -> List[int]:
        return [task.chunk.index for task in self.tasks if task.state == state]

    @property
    def failures(self) -> Dict[int, str]:
        return {
            task.chunk.index: task.failure_reason
            for task in self.tasks
            if task.failure_reason is not None
        }

    def to_stats(self) -> Dict[str, object]:
        return {
            "chunks_total": self.total,
            "chunks_completed": self.completed,
            "chunks_succeeded": self.indices(ChunkState.SUCCEEDED),
            "chunks_failed": self.indices(ChunkState.EXHAUSTED),
            "chunks_skipped": self.indices(ChunkState.SKIPPED),
            "chunks_abandoned": self.indices(ChunkState.ABANDONED),
        }


class ExtractionOrchestrator:
    """Drives per-chunk extraction calls in bounded batches."""

    def __init__(
        self,
        oracle: ExtractionOracle,
        batch_size: int = 3,
        retry_config: Optional[RetryConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
        deadline_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        cancelled: Optional[Callable[[], bool]] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            oracle: Extraction oracle
            batch_size: Max chunks in flight at once (default 3)
            retry_config: Per-chunk retry policy
            progress_callback: Called with (completed, total) as chunks settle
            deadline_seconds: Overall time budget for the run
            clock: Monotonic time source
            cancelled: Polled before each batch; when true, unstarted chunks are abandoned
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.oracle = oracle
        self.batch_size = batch_size
        self.retry_config = retry_config or RetryConfig()
        self.progress_callback = progress_callback
        self.deadline_seconds = deadline_seconds
        self._clock = clock
        self._cancelled = cancelled or (lambda: False)
        self._completed = 0
        self._deadline: Optional[float] = None

    async def run(
        self,
        chunks: Sequence[Chunk],
        character_hints: Optional[Sequence[str]] = None,
        deadline: Optional[float] = None
    ) -> OrchestrationReport:
        """
        Extract every chunk.

        Args:
            chunks: Chunks in document order
            character_hints: Roster names passed to every call
            deadline: Absolute clock time shared with earlier stages; overrides
                ``deadline_seconds`` when given

        Returns:
            OrchestrationReport with the successful results

        Raises:
            NotAScriptError: If the first chunk is classified as non-script
            AllChunksFailedError: If no chunk produced a result
        """
        hints = list(character_hints or [])
        tasks = [ChunkTask(chunk=chunk) for chunk in chunks]
        results: List[ExtractionResult] = []
        total = len(tasks)

        self._completed = 0
        if deadline is not None:
            self._deadline = deadline
        elif self.deadline_seconds:
            self._deadline = self._clock() + self.deadline_seconds
        else:
            self._deadline = None

        batches = [
            tasks[i:i + self.batch_size]
            for i in range(0, total, self.batch_size)
        ]
        logger.info(
            f"Extracting {total} chunk(s) in {len(batches)} batch(es) "
            f"(batch_size={self.batch_size}, hints={len(hints)})"
        )

        for number, batch in enumerate(batches):
            stop_reason = self._stop_reason()
            if stop_reason:
                remaining = list(chain.from_iterable(batches[number:]))
                logger.warning(
                    f"{stop_reason}; abandoning {len(remaining)} unstarted chunk(s)"
                )
                for task in remaining:
                    task.abandon_reason = stop_reason.lower()
                    task.transition(ChunkState.ABANDONED)
                    self._settle(task, total)
                break

            logger.debug(
                f"Batch {number + 1}/{len(batches)}: chunks "
                f"{[task.chunk.index for task in batch]}"
            )
            await asyncio.gather(*(
                self._run_chunk(task, hints, results, total) for task in batch
            ))

            if number == 0 and tasks[0].state == ChunkState.SKIPPED:
                raise NotAScriptError(tasks[0].skip_reason, source="chunk 0")

        report = OrchestrationReport(
            results=sorted(results, key=lambda r: r.chunk_index),
            tasks=tasks,
            completed=self._completed
        )

        if not report.results:
            raise AllChunksFailedError(total, report.failures)

        logger.info(
            f"Extraction finished: {len(report.results)}/{total} chunk(s) succeeded"
        )
        return report

    async def _run_chunk(
        self,
        task: ChunkTask,
        hints: List[str],
        results: List[ExtractionResult],
        total: int
    ) -> None:
        """Attempt one chunk until it succeeds, is skipped or is exhausted."""
        index = task.chunk.index
        max_attempts = self.retry_config.max_retries + 1

        while True:
            task.transition(ChunkState.ATTEMPTING)
            task.attempts += 1

            try:
                parsed = await self._attempt(task.chunk, hints)
            except OracleError as error:
                task.errors.append(str(error))

                if not self.retry_config.is_retryable(error):
                    logger.error(f"Chunk {index} failed without retry: {error}")
                    task.transition(ChunkState.EXHAUSTED)
                    break

                if task.attempts >= max_attempts:
                    logger.error(
                        f"Chunk {index}: all {max_attempts} attempts failed. Last error: {error}"
                    )
                    task.transition(ChunkState.EXHAUSTED)
                    break

                delay = calculate_delay(task.attempts, self.retry_config)
                if self._deadline is not None and self._clock() + delay > self._deadline:
                    logger.warning(f"Chunk {index}: no time left for a retry after: {error}")
                    task.transition(ChunkState.EXHAUSTED)
                    break

                logger.warning(
                    f"Chunk {index} attempt {task.attempts}/{max_attempts} failed: {error}. "
                    f"Retrying in {delay:.2f}s..."
                )
                task.transition(ChunkState.RETRYING)
                await asyncio.sleep(delay)
                continue

            if parsed.kind == ResponseKind.NOT_SCRIPT:
                task.skip_reason = parsed.error
                logger.warning(f"Chunk {index} classified as non-script: {parsed.error}")
                task.transition(ChunkState.SKIPPED)
            else:
                task.result = ExtractionResult.from_payload(index, parsed.payload)
                results.append(task.result)
                task.transition(ChunkState.SUCCEEDED)
            break

        self._settle(task, total)

    async def _attempt(self, chunk: Chunk, hints: List[str]):
        """One oracle call; transport and shape problems surface as OracleError."""
        try:
            raw = await self.oracle.extract(chunk.text, hints)
        except OracleError:
            raise
        except Exception as e:
            raise OracleCallError(self.oracle.provider_name, f"{type(e).__name__}: {e}")

        parsed = parse_oracle_response(raw)
        if parsed.kind == ResponseKind.SCHEMA_ERROR:
            raise OracleSchemaError(parsed.error, raw if isinstance(raw, str) else None)
        return parsed

    def _settle(self, task: ChunkTask, total: int) -> None:
        """Advance the progress counter once a chunk reaches a final state."""
        self._completed += 1
        logger.debug(f"Chunk {task.chunk.index} settled as {task.state.value} ({self._completed}/{total})")
        if self.progress_callback:
            self.progress_callback(self._completed, total)

    def _stop_reason(self) -> Optional[str]:
        if self._cancelled():
            return "Run cancelled"
        if self._deadline is not None and self._clock() >= self._deadline:
            return "Deadline elapsed"
        return None
