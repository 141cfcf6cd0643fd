"""Track contribution store.

Holds, per goal and per originating track, the ordered list of raw
contribution facts. Writers always supply the complete desired list for a
``(goal_id, track_id)`` pair, which makes repeated or re-ordered delivery
from the host harmless.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from gpe.models.progress import GoalTrackContribution

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class UpsertOutcome:
    """What the store kept from a submitted list."""

    stored: int
    duplicates_dropped: int


def collapse_dedupe_keys(
    entries: Iterable[GoalTrackContribution],
) -> tuple[list[GoalTrackContribution], int]:
    """Drop entries whose dedupe key was already seen earlier in *entries*.

    Entries without a key are always kept. Returns the kept entries in their
    original order and the number dropped.
    """
    seen: set[str] = set()
    kept: list[GoalTrackContribution] = []
    dropped = 0
    for entry in entries:
        if entry.dedupe_key is not None:
            if entry.dedupe_key in seen:
                dropped += 1
                continue
            seen.add(entry.dedupe_key)
        kept.append(entry)
    return kept, dropped


class TrackContributionStore:
    """Per-goal, per-track ordered contribution lists."""

    def __init__(self) -> None:
        self._tracks: dict[str, dict[str, list[GoalTrackContribution]]] = {}

    def upsert_track_contributions(
        self,
        goal_id: str,
        track_id: str,
        entries: Iterable[GoalTrackContribution],
    ) -> UpsertOutcome:
        """Replace the whole list stored for ``(goal_id, track_id)``.

        Entries whose ``track_id`` differs from *track_id* are re-labelled so
        the bucket key and the facts inside it never disagree.
        """
        normalized = [
            entry if entry.track_id == track_id else entry.model_copy(update={"track_id": track_id})
            for entry in entries
        ]
        kept, dropped = collapse_dedupe_keys(normalized)
        self._tracks.setdefault(goal_id, {})[track_id] = kept

        log.debug(
            "contributions.upserted",
            goal_id=goal_id,
            track_id=track_id,
            stored=len(kept),
            duplicates_dropped=dropped,
        )
        return UpsertOutcome(stored=len(kept), duplicates_dropped=dropped)

    def get_track_contributions(self, goal_id: str, track_id: str) -> list[GoalTrackContribution]:
        """Return a copy of the stored list, empty when nothing was recorded."""
        return list(self._tracks.get(goal_id, {}).get(track_id, ()))

    def tracks_for(self, goal_id: str) -> dict[str, list[GoalTrackContribution]]:
        """Return every track recorded for *goal_id*, keyed by track id."""
        return {track_id: list(entries) for track_id, entries in self._tracks.get(goal_id, {}).items()}

    def goal_ids(self) -> list[str]:
        return list(self._tracks)
