"""
Shared test fixtures for pytest.

Provides common engine wiring for all test modules:
- settings: Test environment configuration, isolated from the process cache
- clock: Controllable UTC clock injected into the engine
- engine: GoalProgressEngine on fresh state
- ledger: InMemoryLedger seeded with a UZS and a USD account
- make_contribution: Factory for track contributions stamped with the clock
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from gpe.config import Environment, Settings, get_settings
from gpe.ledger import InMemoryLedger
from gpe.models import Account, GoalTrackContribution
from gpe.services import GoalProgressEngine

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


# ------------------------------------------------------------------ #
# Clear settings cache between tests
# ------------------------------------------------------------------ #

@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Clear the lru_cache on get_settings so test overrides take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ------------------------------------------------------------------ #
# Engine wiring
# ------------------------------------------------------------------ #

class FakeClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def settings() -> Settings:
    return Settings(environment=Environment.TEST, _env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(settings: Settings, clock: FakeClock) -> GoalProgressEngine:
    return GoalProgressEngine(settings=settings, clock=clock)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger(
        accounts=[
            Account(account_id="acc_uzs", currency="UZS", name="Wallet"),
            Account(account_id="acc_usd", currency="USD", name="Card"),
        ]
    )


@pytest.fixture
def make_contribution(clock: FakeClock) -> Callable[..., GoalTrackContribution]:
    def _make(
        value: float,
        *,
        track_id: str = "finance",
        key: str | None = None,
        at: datetime | None = None,
    ) -> GoalTrackContribution:
        return GoalTrackContribution(
            track_id=track_id,
            value=value,
            occurred_at=at or clock(),
            dedupe_key=key,
        )

    return _make
