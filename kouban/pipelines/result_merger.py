"""
Kouban Result Merger

Combines per-chunk extraction results into one table:
- scenes are deduplicated by (episode, scene_number)
- character name variants collapse to canonical identities
- output is sorted, so arrival order never matters

When two variants share a scene key, the one with the longer content wins.
Ties keep the earlier variant (lower chunk index, then position in chunk).
Character sets are unioned across variants by default; REPLACE keeps the
winner's set as-is.
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set

from kouban.core.constants import MergePolicy
from kouban.core.logging_config import get_logger
from kouban.llm.schemas import RawScene
from kouban.pipelines.models import (
    ExtractionResult,
    MergedScene,
    MergedTable,
    SceneKey,
    canonical_key,
    scene_key,
)

logger = get_logger("pipelines.merger")


class ResultMerger:
    """Deterministic merge of extraction results."""

    def __init__(self, policy: MergePolicy = MergePolicy.UNION):
        self.policy = policy

    def merge(self, results: Iterable[ExtractionResult]) -> MergedTable:
        """
        Merge extraction results into a single table.

        Args:
            results: Successful extraction results, in any order

        Returns:
            MergedTable with a sorted roster and sorted unique scenes
        """
        ordered = sorted(results, key=lambda r: r.chunk_index)

        roster: Set[str] = set()
        scenes: Dict[SceneKey, MergedScene] = {}
        dropped = 0

        for result in ordered:
            roster.update(self._canonical_names(result.characters))

            for raw in result.scenes:
                names = self._canonical_names(raw.characters)
                roster.update(names)

                candidate = self._to_merged(raw, names, result.chunk_index)
                if candidate is None:
                    dropped += 1
                    continue

                existing = scenes.get(candidate.key)
                scenes[candidate.key] = (
                    candidate if existing is None else self._reconcile(existing, candidate)
                )

        if dropped:
            logger.warning(f"Dropped {dropped} scene(s) without an identifiable scene number")

        merged = MergedTable(
            characters=sorted(roster),
            scenes=sorted(scenes.values(), key=lambda s: s.sort_key)
        )
        logger.info(
            f"Merged {len(ordered)} result(s) into {len(merged.scenes)} scene(s), "
            f"{len(merged.characters)} character(s)"
        )
        return merged

    def _reconcile(self, current: MergedScene, challenger: MergedScene) -> MergedScene:
        """Pick the most complete variant of a scene."""
        if len(challenger.content) > len(current.content):
            winner, loser = challenger, current
        else:
            winner, loser = current, challenger

        if self.policy == MergePolicy.UNION:
            names = tuple(sorted(set(winner.characters) | set(loser.characters)))
            return replace(winner, characters=names)
        return winner

    @staticmethod
    def _canonical_names(raw_names: Iterable[str]) -> List[str]:
        keys = (canonical_key(name) for name in raw_names)
        return [key for key in keys if key]

    @staticmethod
    def _to_merged(raw: RawScene, names: List[str], chunk_index: int) -> Optional[MergedScene]:
        key = scene_key(raw)
        if key is None:
            return None
        episode, number = key
        return MergedScene(
            episode=episode,
            scene_number=number,
            location=raw.location,
            time_of_day=raw.time_of_day,
            content=raw.content,
            characters=tuple(sorted(set(names))),
            props=raw.props,
            notes=raw.notes,
            source_chunk=chunk_index
        )


def merge_results(
    results: Iterable[ExtractionResult],
    policy: MergePolicy = MergePolicy.UNION
) -> MergedTable:
    """Convenience wrapper around ResultMerger.merge()."""
    return ResultMerger(policy).merge(results)
