"""Tests for provider call classification and event publishing helpers."""

from unittest.mock import AsyncMock

import pytest

from kubeplane.application.provider_calls import call_provider, publish_events
from kubeplane.domain.entities.cluster import ClusterDeleted
from kubeplane.domain.errors import NotFoundError, ProviderRejectedError
from kubeplane.domain.value_objects.iid import IID


async def _returns(value):
    return value


async def _raises(error):
    raise error


@pytest.mark.asyncio
class TestCallProvider:
    async def test_passes_result_through(self):
        assert await call_provider("GetCluster", None, _returns(42)) == 42

    async def test_classified_error_gets_context(self):
        with pytest.raises(NotFoundError) as exc:
            await call_provider("GetCluster", IID("c1"), _raises(NotFoundError("gone")))
        assert exc.value.operation == "GetCluster"
        assert exc.value.target == IID("c1")

    async def test_classified_error_keeps_own_context(self):
        error = NotFoundError("gone", operation="GetNodeGroup", target=IID("np"))
        with pytest.raises(NotFoundError) as exc:
            await call_provider("GetCluster", IID("c1"), _raises(error))
        assert exc.value.operation == "GetNodeGroup"
        assert exc.value.target == IID("np")

    async def test_unclassified_error_is_wrapped(self):
        with pytest.raises(ProviderRejectedError) as exc:
            await call_provider(
                "CreateCluster", IID("c1"), _raises(ConnectionError("reset by peer"))
            )
        assert exc.value.operation == "CreateCluster"
        assert exc.value.provider_message == "reset by peer"
        assert isinstance(exc.value.__cause__, ConnectionError)


@pytest.mark.asyncio
class TestPublishEvents:
    async def test_publishes_all_events(self):
        bus = AsyncMock()
        events = (ClusterDeleted(aggregate_id="a"), ClusterDeleted(aggregate_id="b"))
        await publish_events(bus, events)
        bus.publish.assert_awaited_once_with(list(events))

    async def test_no_bus_is_a_no_op(self):
        await publish_events(None, (ClusterDeleted(aggregate_id="a"),))

    async def test_nothing_to_publish(self):
        bus = AsyncMock()
        await publish_events(bus, ())
        bus.publish.assert_not_awaited()
