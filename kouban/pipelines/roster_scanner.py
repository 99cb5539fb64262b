"""
Kouban Roster Scanner

One bounded prescan call on the opening of the script. It yields the
character roster passed as hints to every extraction call, a coarse scene
skeleton, and the early "is this a script at all" gate.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from kouban.core.constants import DEFAULT_ROSTER_SAMPLE_SIZE
from kouban.core.exceptions import (
    InputEmptyError,
    NotAScriptError,
    OracleCallError,
    OracleError,
    OracleSchemaError,
)
from kouban.core.logging_config import get_logger
from kouban.core.retry import RetryConfig, retry_async_call
from kouban.llm.oracle import ExtractionOracle
from kouban.llm.response_parser import ParsedResponse, ResponseKind, parse_oracle_response
from kouban.pipelines.models import canonical_key, normalize_episode, normalize_scene_number

logger = get_logger("pipelines.roster")


@dataclass(frozen=True)
class SkeletonScene:
    """Coarse scene entry from the prescan."""
    episode: str
    scene_number: str
    location: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return (self.episode, self.scene_number)


@dataclass
class RosterScan:
    """Result of the prescan."""
    characters: List[str] = field(default_factory=list)
    skeleton: List[SkeletonScene] = field(default_factory=list)
    sample_length: int = 0
    degraded: bool = False  # prescan failed; extraction runs without hints


class RosterScanner:
    """Runs the prescan on a bounded prefix of the script."""

    def __init__(
        self,
        oracle: ExtractionOracle,
        sample_size: int = DEFAULT_ROSTER_SAMPLE_SIZE,
        retry_config: Optional[RetryConfig] = None,
        deadline: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            oracle: Extraction oracle
            sample_size: Max characters of the opening sent to the prescan
            retry_config: Retry policy for the prescan call
            deadline: Absolute clock time past which no retry is scheduled
            clock: Monotonic time source
        """
        self.oracle = oracle
        self.sample_size = sample_size
        self.retry_config = retry_config or RetryConfig()
        self.deadline = deadline
        self._clock = clock

    def take_sample(self, text: str) -> str:
        """Leading ``sample_size`` characters, cut back to a line break when possible."""
        if len(text) <= self.sample_size:
            return text
        window = text[:self.sample_size]
        cut = window.rfind("\n")
        return window[:cut + 1] if cut > 0 else window

    async def scan(self, text: str) -> RosterScan:
        """
        Prescan the opening of the script.

        Raises:
            InputEmptyError: If there is no usable text
            NotAScriptError: If the sample is classified as non-script
        """
        if not text or not text.strip():
            raise InputEmptyError()

        sample = self.take_sample(text)
        logger.info(f"Roster prescan on {len(sample)}/{len(text)} chars")

        try:
            parsed = await retry_async_call(
                self._prescan,
                sample,
                config=self.retry_config,
                deadline=self.deadline,
                clock=self._clock
            )
        except OracleError as e:
            logger.warning(f"Roster prescan failed, continuing without hints: {e}")
            return RosterScan(sample_length=len(sample), degraded=True)

        if parsed.kind == ResponseKind.NOT_SCRIPT:
            raise NotAScriptError(parsed.error, source="roster")

        payload = parsed.payload
        roster = RosterScan(
            characters=self._unique_names(payload.characters),
            skeleton=[
                SkeletonScene(
                    episode=normalize_episode(entry.episode),
                    scene_number=normalize_scene_number(entry.scene_number),
                    location=entry.location
                )
                for entry in payload.scene_list
                if normalize_scene_number(entry.scene_number)
            ],
            sample_length=len(sample)
        )
        logger.info(
            f"Roster: {len(roster.characters)} character(s), "
            f"{len(roster.skeleton)} skeleton scene(s)"
        )
        return roster

    async def _prescan(self, sample: str) -> ParsedResponse:
        try:
            raw = await self.oracle.prescan(sample)
        except OracleError:
            raise
        except Exception as e:
            raise OracleCallError(self.oracle.provider_name, f"{type(e).__name__}: {e}")

        parsed = parse_oracle_response(raw)
        if parsed.kind == ResponseKind.SCHEMA_ERROR:
            raise OracleSchemaError(parsed.error, raw if isinstance(raw, str) else None)
        return parsed

    @staticmethod
    def _unique_names(names: List[str]) -> List[str]:
        """Keep the first spelling of each canonical identity, in order."""
        seen = set()
        unique = []
        for name in names:
            key = canonical_key(name)
            if key and key not in seen:
                seen.add(key)
                unique.append(name)
        return unique
