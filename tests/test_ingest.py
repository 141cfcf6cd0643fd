"""Tests for SignalIngestor: host signals become deduplicated contributions."""

from __future__ import annotations

from datetime import timedelta

import pytest

from gpe.models import (
    FinanceMode,
    FinanceSignal,
    FocusSessionSignal,
    GoalDefinition,
    HabitMarkedSignal,
    ManualUpdateSignal,
    MetricType,
    MilestoneConfig,
    TaskCompletedSignal,
    TrackConfig,
)
from gpe.services import SignalIngestor


@pytest.fixture
def ingestor(engine) -> SignalIngestor:
    return SignalIngestor(engine)


class TestTaskSignals:
    def test_completed_task_counts_once(self, engine, ingestor, clock):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=4))
        signal = TaskCompletedSignal(goal_id="g", task_id="t1", timestamp=clock())

        first = ingestor.handle_task_completed(signal)
        second = ingestor.handle_task_completed(signal)

        assert first.percent == pytest.approx(25.0)
        assert second.percent == pytest.approx(25.0)
        assert len(engine.get_track_contributions("g", "tasks")) == 1
        assert engine.get_track_contributions("g", "tasks")[0].dedupe_key == "task:t1"

    def test_duration_goal_uses_task_minutes(self, engine, ingestor):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.DURATION, target_value=120))

        record = ingestor.handle_task_completed(
            TaskCompletedSignal(goal_id="g", task_id="t1", duration_minutes=45)
        )

        assert record.current == 45

    def test_track_override(self, engine, ingestor):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=4))

        ingestor.handle_task_completed(TaskCompletedSignal(goal_id="g", task_id="t1", track_id="sprint"))

        assert len(engine.get_track_contributions("g", "sprint")) == 1
        assert engine.get_track_contributions("g", "tasks") == []

    def test_unknown_goal_is_ignored(self, engine, ingestor):
        assert ingestor.handle_task_completed(TaskCompletedSignal(goal_id="missing", task_id="t1")) is None
        assert engine.get_track_contributions("missing", "tasks") == []


class TestMilestoneSignals:
    @pytest.fixture
    def launch_goal(self, engine) -> GoalDefinition:
        definition = GoalDefinition(
            goal_id="launch",
            tracks=(
                TrackConfig(
                    track_id="milestones",
                    target=3,
                    milestones=(
                        MilestoneConfig(milestone_id="m1", title="Prototype", weight=2),
                        MilestoneConfig(milestone_id="m2", title="Release", weight=1),
                    ),
                ),
            ),
        )
        engine.register_goal(definition)
        return definition

    def test_task_completes_declared_milestone(self, engine, ingestor, launch_goal):
        record = ingestor.handle_task_completed(TaskCompletedSignal(goal_id="launch", task_id="t1", milestone_id="m1"))

        milestones = record.per_track_breakdown["milestones"]
        assert milestones.raw_value == 2
        assert milestones.completed_milestones == ["m1"]
        assert record.percent == pytest.approx(200 / 3)
        assert len(engine.get_track_contributions("launch", "tasks")) == 1

    def test_milestone_counts_once_across_tasks(self, engine, ingestor, launch_goal):
        ingestor.handle_task_completed(TaskCompletedSignal(goal_id="launch", task_id="t1", milestone_id="m2"))
        record = ingestor.handle_task_completed(TaskCompletedSignal(goal_id="launch", task_id="t2", milestone_id="m2"))

        assert record.per_track_breakdown["milestones"].raw_value == 1
        assert len(engine.get_track_contributions("launch", "milestones")) == 1
        assert len(engine.get_track_contributions("launch", "tasks")) == 2

    def test_undeclared_milestone_adds_only_the_task(self, engine, ingestor, launch_goal):
        record = ingestor.handle_task_completed(
            TaskCompletedSignal(goal_id="launch", task_id="t1", milestone_id="unknown")
        )

        assert engine.get_track_contributions("launch", "milestones") == []
        assert record.per_track_breakdown["milestones"].completed_milestones == []
        assert record.percent == 0.0


class TestHabitSignals:
    def test_one_check_in_per_habit_per_day(self, engine, ingestor, clock):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=30))

        ingestor.handle_habit_marked(HabitMarkedSignal(goal_id="g", habit_id="run", completed=True, timestamp=clock()))
        ingestor.handle_habit_marked(
            HabitMarkedSignal(goal_id="g", habit_id="run", completed=True, timestamp=clock() + timedelta(hours=2))
        )
        record = ingestor.handle_habit_marked(
            HabitMarkedSignal(goal_id="g", habit_id="run", completed=True, timestamp=clock() + timedelta(days=1))
        )

        assert record.current == 2
        keys = [e.dedupe_key for e in engine.get_track_contributions("g", "habits")]
        assert keys == ["habit:run:2026-03-15", "habit:run:2026-03-16"]

    def test_missed_habit_adds_nothing(self, engine, ingestor):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=30))

        record = ingestor.handle_habit_marked(HabitMarkedSignal(goal_id="g", habit_id="run", completed=False))

        assert record.current == 0

    def test_recheck_after_uncheck_on_same_day_counts(self, engine, ingestor, clock):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=30))

        ingestor.handle_habit_marked(HabitMarkedSignal(goal_id="g", habit_id="run", completed=False, timestamp=clock()))
        record = ingestor.handle_habit_marked(
            HabitMarkedSignal(goal_id="g", habit_id="run", completed=True, timestamp=clock() + timedelta(hours=1))
        )

        assert record.current == 1
        entries = engine.get_track_contributions("g", "habits")
        assert [(e.dedupe_key, e.value) for e in entries] == [("habit:run:2026-03-15", 1.0)]

    def test_uncheck_replaces_earlier_check(self, engine, ingestor, clock):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=30))

        ingestor.handle_habit_marked(HabitMarkedSignal(goal_id="g", habit_id="run", completed=True, timestamp=clock()))
        record = ingestor.handle_habit_marked(
            HabitMarkedSignal(goal_id="g", habit_id="run", completed=False, timestamp=clock() + timedelta(hours=1))
        )

        assert record.current == 0
        assert record.per_track_breakdown["habits"].streak.current == 0

    def test_redelivered_mark_does_not_recompute(self, engine, ingestor, clock):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=30))
        signal = HabitMarkedSignal(goal_id="g", habit_id="run", completed=True, timestamp=clock())

        ingestor.handle_habit_marked(signal)
        events_before = len(engine.get_events("g"))
        record = ingestor.handle_habit_marked(signal)

        assert record.current == 1
        assert len(engine.get_events("g")) == events_before

    def test_streak_follows_daily_marks(self, engine, ingestor, clock):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=30))

        for offset in range(3):
            record = ingestor.handle_habit_marked(
                HabitMarkedSignal(
                    goal_id="g", habit_id="run", completed=True, timestamp=clock() + timedelta(days=offset)
                )
            )

        streak = record.per_track_breakdown["habits"].streak
        assert streak.current == 3
        assert streak.best == 3


class TestFocusSignals:
    def test_focus_minutes_accumulate(self, engine, ingestor):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.DURATION, target_value=600))

        ingestor.handle_focus_session(FocusSessionSignal(goal_id="g", session_id="s1", minutes=50))
        record = ingestor.handle_focus_session(FocusSessionSignal(goal_id="g", session_id="s2", minutes=25))

        assert record.current == 75
        assert record.per_track_breakdown["focus"].accepted == 2


class TestFinanceSignals:
    def test_outflow_on_spend_goal(self, engine, ingestor):
        engine.register_goal(
            GoalDefinition(
                goal_id="g",
                metric_type=MetricType.AMOUNT,
                finance_mode=FinanceMode.SPEND,
                target_value=1000,
            )
        )

        record = ingestor.handle_finance_transaction(
            FinanceSignal(goal_id="g", amount=250, currency="UZS", direction="outflow", source_id="txn1")
        )

        assert record.percent == pytest.approx(25.0)
        assert engine.get_track_contributions("g", "finance")[0].value == -250

    def test_redelivered_transaction_is_ignored(self, engine, ingestor):
        engine.register_goal(
            GoalDefinition(goal_id="g", metric_type=MetricType.AMOUNT, finance_mode=FinanceMode.SAVE, target_value=1000)
        )
        signal = FinanceSignal(goal_id="g", amount=100, currency="UZS", source_id="txn1")

        ingestor.handle_finance_transaction(signal)
        record = ingestor.handle_finance_transaction(signal)

        assert record.percent == pytest.approx(10.0)

    def test_amount_is_converted_to_goal_currency(self, engine):
        engine.register_goal(
            GoalDefinition(
                goal_id="g",
                metric_type=MetricType.AMOUNT,
                finance_mode=FinanceMode.SAVE,
                target_value=1_200_000,
                currency="UZS",
            )
        )
        rates = {("USD", "UZS"): 12_000.0}
        ingestor = SignalIngestor(engine, rate_lookup=lambda amount, src, dst: amount * rates[(src, dst)])

        record = ingestor.handle_finance_transaction(
            FinanceSignal(goal_id="g", amount=50, currency="USD", source_id="txn1")
        )

        assert record.current == 600_000
        assert record.percent == pytest.approx(50.0)


class TestManualSignals:
    def test_manual_update_delegates_to_engine(self, engine, ingestor):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=10))

        record = ingestor.handle_manual_update(ManualUpdateSignal(goal_id="g", value=6, note="import"))

        assert record.current == 6
        assert engine.get_events("g")[-2].payload.note == "import"
