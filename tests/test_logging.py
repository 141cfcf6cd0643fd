"""Tests for structured logging setup and the events the engine emits."""

from __future__ import annotations

import math

import pytest
import structlog
from structlog.testing import capture_logs

from gpe.config import Environment, Settings
from gpe.models import GoalDefinition, MetricType
from gpe.telemetry import (
    bind_goal_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
    unbind_goal_context,
)


@pytest.fixture(autouse=True)
def _reset_structlog():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


class TestEngineLogEvents:
    def test_recompute_is_logged(self, engine):
        with capture_logs() as logs:
            engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=5))

        recomputed = [entry for entry in logs if entry["event"] == "engine.recomputed"]
        assert recomputed[0]["goal_id"] == "g"
        assert recomputed[0]["log_level"] == "info"

    def test_rejections_are_logged_as_warning(self, engine, make_contribution):
        engine.register_goal(GoalDefinition(goal_id="g", metric_type=MetricType.COUNT, target_value=5))

        with capture_logs() as logs:
            engine.upsert_track_contributions("g", "tasks", [make_contribution(math.nan, track_id="tasks")])

        warnings = [entry for entry in logs if entry["event"] == "engine.contributions_rejected"]
        assert warnings[0]["log_level"] == "warning"
        assert warnings[0]["count"] == 1

    def test_unknown_goal_upsert_is_logged(self, engine, make_contribution):
        with capture_logs() as logs:
            engine.upsert_track_contributions("missing", "tasks", [make_contribution(1, track_id="tasks")])

        assert any(entry["event"] == "engine.upsert_unknown_goal" for entry in logs)


class TestContextBinding:
    def test_bind_and_unbind_goal(self):
        bind_goal_context("g1")
        assert structlog.contextvars.get_contextvars()["goal_id"] == "g1"

        unbind_goal_context()
        assert "goal_id" not in structlog.contextvars.get_contextvars()

    def test_clear_context(self):
        bind_goal_context("g1")
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}


class TestConfigureLogging:
    def test_json_renderer_in_production(self):
        configure_logging(json_logs=True, log_level="WARNING")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_in_dev(self):
        configure_logging(json_logs=False)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_configure_from_settings(self):
        settings = Settings(environment=Environment.PROD, json_logs=True, _env_file=None)

        configure_logging_from_settings(settings)

        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)
