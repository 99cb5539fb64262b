"""
Tests for Base Pipeline Module

Tests for kouban/pipelines/base_pipeline.py
"""

import pytest

from kouban.pipelines.base_pipeline import BasePipeline, PipelineStatus, PipelineStep


class CountingPipeline(BasePipeline[int, int]):
    """Adds one per step; a step named in ``fail_at`` raises."""

    def __init__(self, fail_at=None, cancel_at=None):
        self.fail_at = fail_at
        self.cancel_at = cancel_at
        self.executed = []
        super().__init__("counting")

    def _define_steps(self) -> None:
        self._steps = [
            PipelineStep("first", "add one"),
            PipelineStep("second", "add one"),
            PipelineStep("third", "add one"),
        ]

    async def _execute_step(self, step, input_data, context):
        self.executed.append(step.name)
        context["last"] = step.name
        if step.name == self.cancel_at:
            self.cancel()
        if step.name == self.fail_at:
            raise ValueError(f"{step.name} broke")
        return input_data + 1

    def _build_metadata(self, context):
        return {"last": context.get("last")}


class TestBasePipeline:
    """Tests for the generic step runner."""

    @pytest.mark.asyncio
    async def test_runs_steps_in_order(self):
        pipeline = CountingPipeline()

        result = await pipeline.run(0)

        assert result.success
        assert result.output == 3
        assert pipeline.executed == ["first", "second", "third"]
        assert result.metadata == {"steps_completed": 3, "last": "third"}
        assert result.duration_seconds >= 0
        assert pipeline.status == PipelineStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_failure_is_captured(self):
        """Test a raising step ends the run with the error on the result."""
        pipeline = CountingPipeline(fail_at="second")

        result = await pipeline.run(0)

        assert result.status == PipelineStatus.FAILED
        assert result.error == "second broke"
        assert result.error_type == "ValueError"
        assert isinstance(result.exception, ValueError)
        assert result.metadata == {"failed_step": "second", "last": "second"}
        assert pipeline.executed == ["first", "second"]

    @pytest.mark.asyncio
    async def test_cancel_between_steps(self):
        pipeline = CountingPipeline(cancel_at="first")

        result = await pipeline.run(0)

        assert result.status == PipelineStatus.CANCELLED
        assert result.output is None
        assert pipeline.executed == ["first"]

    @pytest.mark.asyncio
    async def test_error_after_cancel_is_cancelled(self):
        pipeline = CountingPipeline(cancel_at="second", fail_at="second")

        result = await pipeline.run(0)

        assert result.status == PipelineStatus.CANCELLED
        assert result.error_type == "ValueError"

    @pytest.mark.asyncio
    async def test_cancel_before_run(self):
        pipeline = CountingPipeline()
        pipeline.cancel()

        result = await pipeline.run(0)

        assert result.status == PipelineStatus.CANCELLED
        assert pipeline.executed == []
        assert pipeline.cancel_requested

    def test_steps_are_a_copy(self):
        pipeline = CountingPipeline()

        pipeline.steps.clear()

        assert [step.name for step in pipeline.steps] == ["first", "second", "third"]
