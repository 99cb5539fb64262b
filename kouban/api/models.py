"""Request and response bodies for the breakdown API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from kouban.pipelines.base_pipeline import PipelineResult


class BreakdownRequest(BaseModel):
    text: str = Field(description="Plain screenplay text")


class SceneRow(BaseModel):
    scene: str
    episode: str
    scene_number: str
    location: str = ""
    timeOfDay: str = ""
    timeOfDayLabel: str = ""
    time_of_day_raw: str = ""
    content: str = ""
    characters: Dict[str, bool] = Field(default_factory=dict)
    props: str = ""
    notes: str = ""


class BreakdownStats(BaseModel):
    chunks_total: int = 0
    chunks_completed: int = 0
    chunks_succeeded: List[int] = Field(default_factory=list)
    chunks_failed: List[int] = Field(default_factory=list)
    chunks_skipped: List[int] = Field(default_factory=list)
    chunks_abandoned: List[int] = Field(default_factory=list)
    roster_size: int = 0
    roster_degraded: bool = False
    missing_from_skeleton: List[str] = Field(default_factory=list)
    duration_seconds: float = 0.0


class BreakdownResponse(BaseModel):
    characters: List[str]
    scenes: List[SceneRow]
    stats: BreakdownStats

    @classmethod
    def from_result(cls, result: PipelineResult) -> 'BreakdownResponse':
        table = result.output.to_dict()
        stats = {
            key: value for key, value in result.metadata.items()
            if key in BreakdownStats.model_fields
        }
        return cls(
            characters=table["characters"],
            scenes=[SceneRow(**row) for row in table["scenes"]],
            stats=BreakdownStats(duration_seconds=result.duration_seconds, **stats),
        )


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
