"""Read-only projection of goal progress for the home dashboard widget.

The widget shape is owned by presentation code and deliberately decoupled
from ``GoalProgressRecord``: changes to the widget only touch this module.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from gpe.models.goal import GoalCategory, GoalDefinition
from gpe.models.progress import GoalProgressRecord, ProgressStatus
from gpe.services.engine import GoalProgressEngine

HomeCategory = Literal["financial", "health", "personal", "professional"]


class HomeGoalItem(BaseModel):
    id: str
    title: str
    progress: int  # rounded percent, 0-100
    current: float
    target: float
    unit: str
    category: HomeCategory
    status: ProgressStatus
    eta: datetime | None = None
    pace_actual: float | None = None
    pace_required: float | None = None


class GoalsWidgetState(BaseModel):
    has_data: bool
    goals: list[HomeGoalItem] = Field(default_factory=list)


def map_category(category: GoalCategory) -> HomeCategory:
    if category == GoalCategory.FINANCIAL:
        return "financial"
    if category == GoalCategory.HEALTH:
        return "health"
    if category == GoalCategory.PERSONAL:
        return "personal"
    return "professional"


def to_home_goal(definition: GoalDefinition, record: GoalProgressRecord) -> HomeGoalItem:
    return HomeGoalItem(
        id=definition.goal_id,
        title=definition.display_title,
        progress=round(record.percent),
        current=record.current,
        target=record.target,
        unit=definition.unit,
        category=map_category(definition.category),
        status=record.status,
        eta=record.eta,
        pace_actual=record.pace_actual,
        pace_required=record.pace_required,
    )


def build_goals_widget_state(engine: GoalProgressEngine, limit: int | None = None) -> GoalsWidgetState:
    """Top goals for the widget, most advanced first.

    Ties on percent are broken by the smaller remaining amount. Archived
    goals are left out.
    """
    limit = engine.settings.widget_limit if limit is None else limit
    records = sorted(
        engine.list_progress(),
        key=lambda record: (-record.percent, record.remaining),
    )[: max(limit, 0)]

    goals = []
    for record in records:
        definition = engine.get_definition(record.goal_id)
        if definition is not None:
            goals.append(to_home_goal(definition, record))
    return GoalsWidgetState(has_data=bool(goals), goals=goals)
