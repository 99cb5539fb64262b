"""Breakdown endpoints: synchronous JSON and server-sent progress events."""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from kouban.api.models import BreakdownRequest, BreakdownResponse, ErrorResponse
from kouban.api.settings import get_settings
from kouban.core.config import KoubanConfig, get_config
from kouban.core.exceptions import (
    AllChunksFailedError,
    ConfigurationError,
    InputEmptyError,
    KoubanError,
    NotAScriptError,
)
from kouban.core.logging_config import get_logger
from kouban.llm.oracle import ExtractionOracle, create_oracle
from kouban.pipelines.base_pipeline import PipelineResult
from kouban.pipelines.breakdown_pipeline import BreakdownPipeline

logger = get_logger("api.breakdown")

router = APIRouter()

# Rate limiter for LLM-heavy breakdown requests
limiter = Limiter(key_func=get_remote_address)

# Checked in order; subclasses before their bases
ERROR_STATUS_CODES = (
    (InputEmptyError, 400),
    (NotAScriptError, 422),
    (AllChunksFailedError, 502),
    (ConfigurationError, 503),
)

# Background runs kept referenced until they finish or notice a cancel
_running: Set[asyncio.Task] = set()


@dataclass
class SSEEvent:
    """Server-sent event."""
    event: str
    data: Dict[str, Any]

    def format(self) -> str:
        return f"event: {self.event}\ndata: {json.dumps(self.data, ensure_ascii=False)}\n\n"


def get_app_config() -> KoubanConfig:
    return get_config()


def get_oracle(request: Request, config: KoubanConfig = Depends(get_app_config)) -> ExtractionOracle:
    """One oracle per app, so its HTTP client is reused and closed on shutdown."""
    oracle = getattr(request.app.state, "oracle", None)
    if oracle is None:
        try:
            oracle = create_oracle(config.llm)
        except ConfigurationError as e:
            logger.error(f"Oracle unavailable: {e}")
            raise
        request.app.state.oracle = oracle
    return oracle


def status_code_for(error: Optional[Exception]) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_body(
    error: Optional[Exception],
    error_type: Optional[str] = None,
    message: Optional[str] = None
) -> Dict[str, Any]:
    if isinstance(error, KoubanError):
        body = ErrorResponse(
            error=type(error).__name__,
            message=error.message,
            details=error.details or None,
        )
    else:
        body = ErrorResponse(
            error=error_type or "Error",
            message=message or "Breakdown failed",
        )
    return body.model_dump(exclude_none=True)


def result_error_body(result: PipelineResult) -> Dict[str, Any]:
    return error_body(result.exception, result.error_type, result.error)


@router.post("", response_model=BreakdownResponse, responses={
    400: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
})
@limiter.limit(lambda: get_settings().rate_limit)
async def run_breakdown(
    request: Request,
    breakdown_request: BreakdownRequest,
    oracle: ExtractionOracle = Depends(get_oracle),
    config: KoubanConfig = Depends(get_app_config),
):
    """Break a script down and return the full table."""
    pipeline = BreakdownPipeline(oracle, config.pipeline)
    result = await pipeline.run(breakdown_request.text)

    if not result.success:
        status_code = status_code_for(result.exception)
        logger.warning(f"Breakdown failed ({status_code}): {result.error}")
        return JSONResponse(status_code=status_code, content=result_error_body(result))

    return BreakdownResponse.from_result(result)


@router.post("/stream")
@limiter.limit(lambda: get_settings().rate_limit)
async def stream_breakdown(
    request: Request,
    breakdown_request: BreakdownRequest,
    oracle: ExtractionOracle = Depends(get_oracle),
    config: KoubanConfig = Depends(get_app_config),
):
    """Break a script down, streaming progress as server-sent events.

    Event types:
    - progress: {completed, total} after each chunk settles
    - complete: the breakdown table with stats
    - error: {error, message, status_code}
    """
    queue: asyncio.Queue = asyncio.Queue()

    def on_progress(completed: int, total: int) -> None:
        queue.put_nowait(SSEEvent("progress", {"completed": completed, "total": total}))

    pipeline = BreakdownPipeline(oracle, config.pipeline, on_progress)

    return StreamingResponse(
        pipeline_events(request, pipeline, breakdown_request.text, queue),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
    )


async def pipeline_events(
    request: Request,
    pipeline: BreakdownPipeline,
    text: str,
    queue: asyncio.Queue
):
    """Run the pipeline in the background and yield its events as SSE frames.

    The run is cancelled when the client disconnects.
    """
    async def run_pipeline() -> None:
        try:
            result = await pipeline.run(text)
            if result.success:
                response = BreakdownResponse.from_result(result)
                await queue.put(SSEEvent("complete", response.model_dump()))
            else:
                body = result_error_body(result)
                body["status_code"] = status_code_for(result.exception)
                await queue.put(SSEEvent("error", body))
        finally:
            await queue.put(None)

    task = asyncio.create_task(run_pipeline())
    _running.add(task)
    task.add_done_callback(_running.discard)
    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected from breakdown stream")
                pipeline.cancel()
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=30.0)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            if event is None:
                break
            yield event.format()
    except asyncio.CancelledError:
        logger.info("SSE breakdown stream cancelled")
        pipeline.cancel()
        raise
