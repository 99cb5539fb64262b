"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import asyncio
import json
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest

from kouban.core.config import PipelineConfig
from kouban.core.retry import RetryConfig
from kouban.llm.oracle import ExtractionOracle


SCENE_HEADING = re.compile(r'^○(\d+)\s*(\S+?)（(\S+?)）$', re.MULTILINE)

SAMPLE_SCRIPT = """○1 公園（昼）
田中と佐藤がベンチに座って話している。
田中「今日はいい天気だね」
○2 田中の家（夜）
田中が机で手紙を読む。
○3 駅前（朝）
佐藤が走って改札を抜ける。
佐藤「間に合った」
○4 学校（夕方）
田中(13)が校庭でボールを蹴る。
○5 病院（深夜）
佐藤が廊下で医師と話す。
"""

SCENE_CHARACTERS = {
    "1": ["田中", "佐藤"],
    "2": ["田中"],
    "3": ["佐藤"],
    "4": ["田中(13)"],
    "5": ["佐藤"],
}


def scenes_from_text(text: str) -> List[dict]:
    """Scene records for every heading found in a chunk of SAMPLE_SCRIPT."""
    return [
        {
            "episode": 1,
            "scene_number": int(number),
            "location": location,
            "timeOfDay": time_of_day,
            "content": f"シーン{number}の出来事",
            "characters": SCENE_CHARACTERS.get(number, []),
        }
        for number, location, time_of_day in SCENE_HEADING.findall(text)
    ]


def script_response(scenes: List[dict], characters: Optional[List[str]] = None) -> str:
    names = characters
    if names is None:
        names = sorted({name for scene in scenes for name in scene.get("characters", [])})
    return json.dumps({"is_script": True, "characters": names, "scenes": scenes}, ensure_ascii=False)


def not_script_response(message: str = "台本形式ではありません") -> str:
    return json.dumps({"is_script": False, "error_message": message}, ensure_ascii=False)


DEFAULT_PRESCAN = json.dumps({
    "is_script": True,
    "characters": ["田中", "佐藤", "田中(13)"],
    "scene_list": [
        {"episode": 1, "scene_number": n, "location": ""} for n in range(1, 6)
    ],
}, ensure_ascii=False)


class FakeOracle(ExtractionOracle):
    """
    Scripted oracle for tests.

    ``extract_handler`` receives (chunk_text, call_number) and returns a
    response body; returning an exception instance raises it instead.
    """

    provider_name = "fake"

    def __init__(
        self,
        prescan_response: Any = DEFAULT_PRESCAN,
        extract_handler: Optional[Callable[[str, int], Any]] = None
    ):
        self.prescan_response = prescan_response
        self.extract_handler = extract_handler or (lambda text, n: script_response(scenes_from_text(text)))
        self.prescan_calls: List[str] = []
        self.extract_calls: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def prescan(self, text: str):
        self.prescan_calls.append(text)
        if isinstance(self.prescan_response, Exception):
            raise self.prescan_response
        return self.prescan_response

    async def extract(self, text: str, character_hints=None):
        call_number = len(self.extract_calls)
        self.extract_calls.append((text, list(character_hints or [])))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            response = self.extract_handler(text, call_number)
        finally:
            self.in_flight -= 1
        if isinstance(response, Exception):
            raise response
        return response

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        raise NotImplementedError


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_script() -> str:
    """Five short scenes with ○ headings."""
    return SAMPLE_SCRIPT


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def no_delay_retry() -> RetryConfig:
    """Retry policy without sleeping between attempts."""
    return RetryConfig(max_retries=2, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Small chunks and zero backoff so each sample scene is its own chunk."""
    return PipelineConfig(
        chunk_size=40,
        chunk_overlap=0,
        roster_sample_size=200,
        batch_size=2,
        max_retries=2,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
    )
