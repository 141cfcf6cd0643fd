"""Goal registry: declarative goal definitions keyed by goal id."""

from __future__ import annotations

import structlog

from gpe.models.goal import GoalDefinition

log = structlog.get_logger(__name__)


class GoalRegistry:
    """In-process registry of goal definitions.

    Registration is an idempotent upsert; the last writer wins for every
    declarative field. Goals are never removed, only soft-archived, so
    contributions and history that reference them stay resolvable.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, GoalDefinition] = {}

    def register_goal(self, definition: GoalDefinition) -> GoalDefinition:
        replaced = definition.goal_id in self._definitions
        self._definitions[definition.goal_id] = definition
        log.debug(
            "registry.goal_registered",
            goal_id=definition.goal_id,
            metric_type=definition.metric_type.value,
            replaced=replaced,
        )
        return definition

    def get_definition(self, goal_id: str) -> GoalDefinition | None:
        """Return the definition for *goal_id*, or None when unknown."""
        return self._definitions.get(goal_id)

    def archive_goal(self, goal_id: str) -> GoalDefinition | None:
        definition = self._definitions.get(goal_id)
        if definition is None:
            return None
        if definition.archived:
            return definition
        archived = definition.model_copy(update={"archived": True})
        self._definitions[goal_id] = archived
        log.info("registry.goal_archived", goal_id=goal_id)
        return archived

    def list_definitions(self, include_archived: bool = False) -> list[GoalDefinition]:
        return [
            definition
            for definition in self._definitions.values()
            if include_archived or not definition.archived
        ]

    def __contains__(self, goal_id: object) -> bool:
        return goal_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)
