"""Global test configuration.

Shared fixtures for the provider adapters and managers. Polling runs on an
injected clock and sleep, so no test waits in real time.
"""

import pytest

from kubeplane.application.polling.status_poller import StatusPoller
from kubeplane.infrastructure.adapters.alibaba_adapter import AlibabaAdapter
from kubeplane.infrastructure.adapters.aws_adapter import AWSAdapter
from kubeplane.infrastructure.adapters.tencent_adapter import TencentAdapter
from kubeplane.infrastructure.event_bus import EventBus


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


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def poller(clock):
    return StatusPoller(
        timeout=600.0, interval=10.0, clock=clock, sleep=clock.sleep
    )


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def recorded_events(event_bus):
    from kubeplane.domain.events.event_base import DomainEvent

    events = []

    async def record(event):
        events.append(event)

    event_bus.subscribe(DomainEvent, record)
    return events


@pytest.fixture
def alibaba():
    return AlibabaAdapter(settle_polls=2)


@pytest.fixture
def tencent():
    return TencentAdapter(settle_polls=2)


@pytest.fixture
def aws():
    return AWSAdapter(settle_polls=2)
