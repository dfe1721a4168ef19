"""Global test configuration.

Shared fixtures for the simulated EC2 cloud and a dispatcher that never
sleeps for real.
"""

import logging
import os

import pytest

from cpi_aws.application.use_cases.dispatch_action import ActionDispatcher
from cpi_aws.infrastructure.adapters.simulated_ec2 import SimulatedEc2Cloud


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep developer AWS/CPI settings out of the tests."""
    for key in list(os.environ):
        if key.startswith("CPI_AWS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    # configure_logging binds handlers to the stderr captured for one test.
    logging.getLogger("cpi_aws").handlers.clear()
    for name in ("botocore", "boto3", "urllib3"):
        logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cloud() -> SimulatedEc2Cloud:
    return SimulatedEc2Cloud()


@pytest.fixture
def dispatcher(cloud, clock) -> ActionDispatcher:
    return ActionDispatcher(
        cloud,
        default_region="us-east-1",
        wait_timeout=30.0,
        poll_interval=5.0,
        sleep=clock.sleep,
        clock=clock,
    )
