"""
Kouban Base Pipeline

Ordered async steps sharing one context dict. The first step that raises
ends the run; its exception is captured in the PipelineResult rather than
propagated.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Generic, TypeVar
from enum import Enum

from kouban.core.logging_config import get_logger

logger = get_logger("pipelines.base")

InputT = TypeVar('InputT')
OutputT = TypeVar('OutputT')


class PipelineStatus(Enum):
    """Status of a pipeline execution."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class PipelineResult(Generic[OutputT]):
    """Outcome of one run: output on success, the stopping error otherwise."""
    status: PipelineStatus
    output: Optional[OutputT] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    exception: Optional[Exception] = field(default=None, repr=False)
    duration_seconds: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == PipelineStatus.COMPLETED


@dataclass
class PipelineStep:
    name: str
    description: str


class BasePipeline(ABC, Generic[InputT, OutputT]):
    """
    Step runner with error capture and cooperative cancellation.

    ``cancel()`` is checked between steps and stays set, so a pipeline
    cancelled before ``run()`` starts returns CANCELLED at once. Long steps
    can poll ``cancel_requested`` to stop early; an error raised after
    cancellation is reported as CANCELLED, not FAILED.
    """

    def __init__(self, name: str):
        self.name = name
        self._steps: List[PipelineStep] = []
        self._status = PipelineStatus.PENDING
        self._cancel_requested = False

        self._define_steps()

    @abstractmethod
    def _define_steps(self) -> None:
        """Populate ``self._steps`` in execution order."""

    @abstractmethod
    async def _execute_step(
        self,
        step: PipelineStep,
        input_data: Any,
        context: Dict[str, Any]
    ) -> Any:
        """Run one step; the return value feeds the next step."""

    def _build_metadata(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    async def run(
        self,
        input_data: InputT,
        context: Dict[str, Any] = None
    ) -> PipelineResult[OutputT]:
        """
        Run every step in order.

        Args:
            input_data: Input to the first step
            context: Shared state visible to every step

        Returns:
            PipelineResult with output, or the error that stopped the run
        """
        context = context if context is not None else {}
        started = time.monotonic()
        self._status = PipelineStatus.RUNNING
        current_data = input_data
        completed = 0

        logger.info(f"Starting pipeline: {self.name}")

        for step in self._steps:
            if self._cancel_requested:
                return self._finish(PipelineStatus.CANCELLED, started, context)

            logger.debug(f"Executing step: {step.name}")
            try:
                current_data = await self._execute_step(step, current_data, context)
            except Exception as e:
                status = PipelineStatus.CANCELLED if self._cancel_requested else PipelineStatus.FAILED
                logger.error(f"Pipeline {status.value}: {self.name} at {step.name} - {e}")
                return self._finish(
                    status, started, context,
                    error=e, extra={'failed_step': step.name}
                )
            completed += 1

        if self._cancel_requested:
            return self._finish(PipelineStatus.CANCELLED, started, context)

        result = self._finish(
            PipelineStatus.COMPLETED, started, context,
            output=current_data, extra={'steps_completed': completed}
        )
        logger.info(f"Pipeline completed: {self.name} ({result.duration_seconds:.2f}s)")
        return result

    def _finish(
        self,
        status: PipelineStatus,
        started: float,
        context: Dict[str, Any],
        output: Any = None,
        error: Optional[Exception] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> PipelineResult[OutputT]:
        self._status = status
        return PipelineResult(
            status=status,
            output=output,
            error=str(error) if error is not None else None,
            error_type=type(error).__name__ if error is not None else None,
            exception=error,
            duration_seconds=time.monotonic() - started,
            metadata={**(extra or {}), **self._build_metadata(context)}
        )

    def cancel(self) -> None:
        """Request cancellation of the current run."""
        self._cancel_requested = True
        logger.info(f"Pipeline cancellation requested: {self.name}")

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def status(self) -> PipelineStatus:
        return self._status

    @property
    def steps(self) -> List[PipelineStep]:
        return self._steps.copy()
