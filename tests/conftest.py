"""Shared fixtures: a scripted fake upstream and a wired-up facade app."""

import pytest
from fastapi.testclient import TestClient

from employee_facade.api import create_app
from employee_facade.settings import Settings

from tests.fakes import BASE_URL, SEED, FakeUpstream


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream(SEED)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        employee_api_base_url=BASE_URL,
        upstream_timeout=5.0,
        request_deadline=5.0,
        retry_max_attempts=3,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
        breaker_failure_rate_threshold=0.5,
        breaker_sliding_window_size=10,
        breaker_minimum_calls=5,
        breaker_wait_duration=60.0,
        breaker_half_open_calls=1,
    )


@pytest.fixture
def client(settings, upstream):
    """Facade app wired to the fake upstream."""
    app = create_app(settings, transport=upstream.transport)
    with TestClient(app) as test_client:
        yield test_client
