from __future__ import annotations

import pytest

from database.models import ProbeOutcome
from exceptions import DatabaseDuplicateError, EndpointNotFoundError, InvalidURLError


@pytest.mark.asyncio
async def test_add_endpoint_strips_and_returns_endpoint(registry) -> None:
    endpoint = await registry.add_endpoint("  https://example.com/health  ")

    assert endpoint.address == "https://example.com/health"
    assert endpoint.paused is False
    assert await registry.get_endpoint(endpoint.id) == endpoint


@pytest.mark.asyncio
@pytest.mark.parametrize("address", ["", "ftp://example.com", "example.com", "http://not a url"])
async def test_add_endpoint_rejects_invalid_addresses(registry, address) -> None:
    with pytest.raises(InvalidURLError):
        await registry.add_endpoint(address)

    assert await registry.list_endpoints() == []


@pytest.mark.asyncio
async def test_add_endpoint_rejects_duplicates(registry) -> None:
    await registry.add_endpoint("https://example.com")

    with pytest.raises(DatabaseDuplicateError):
        await registry.add_endpoint("https://example.com")


@pytest.mark.asyncio
async def test_list_endpoints_newest_first(registry) -> None:
    first = await registry.add_endpoint("https://one.example.com")
    second = await registry.add_endpoint("https://two.example.com")

    assert [e.id for e in await registry.list_endpoints()] == [second.id, first.id]


@pytest.mark.asyncio
async def test_toggle_pause_is_visible_to_list_active_endpoints(registry) -> None:
    endpoint = await registry.add_endpoint("https://example.com")

    assert await registry.toggle_pause(endpoint.id) is True
    listed = await registry.list_active_endpoints()
    assert [(e.id, e.paused) for e in listed] == [(endpoint.id, True)]

    assert await registry.toggle_pause(endpoint.id) is False


@pytest.mark.asyncio
async def test_toggle_pause_unknown_endpoint(registry) -> None:
    with pytest.raises(EndpointNotFoundError):
        await registry.toggle_pause(12345)


@pytest.mark.asyncio
async def test_delete_removes_every_observation(registry, store) -> None:
    endpoint = await registry.add_endpoint("https://example.com")
    other = await registry.add_endpoint("https://other.example.com")
    for _ in range(5):
        await store.append(endpoint.id, ProbeOutcome.up(50, "Status code: 200"))
    await store.append(other.id, ProbeOutcome.down("Status code: 500"))
    await registry.add_destination(endpoint.id, "chat-1")

    assert await registry.delete_endpoint(endpoint.id) is True

    assert await store.count_for(endpoint.id) == 0
    assert store.latest_for(endpoint.id) is None
    assert await registry.get_endpoint(endpoint.id) is None
    assert await store.count_for(other.id) == 1
    assert [e.id for e in await registry.list_active_endpoints()] == [other.id]


@pytest.mark.asyncio
async def test_delete_unknown_endpoint_returns_false(registry) -> None:
    assert await registry.delete_endpoint(4242) is False


@pytest.mark.asyncio
async def test_ids_are_not_reused_after_delete(registry) -> None:
    first = await registry.add_endpoint("https://example.com")
    await registry.delete_endpoint(first.id)
    second = await registry.add_endpoint("https://example.com")

    assert second.id > first.id


@pytest.mark.asyncio
async def test_destinations_are_per_endpoint(registry) -> None:
    one = await registry.add_endpoint("https://one.example.com")
    two = await registry.add_endpoint("https://two.example.com")

    assert await registry.add_destination(one.id, "chat-a") is True
    assert await registry.add_destination(one.id, "chat-b") is True
    assert await registry.add_destination(one.id, "chat-a") is False
    await registry.add_destination(two.id, "chat-c")

    assert await registry.destinations_for(one) == ["chat-a", "chat-b"]
    assert await registry.destinations_for(two) == ["chat-c"]

    assert await registry.remove_destination(one.id, "chat-a") is True
    assert await registry.remove_destination(one.id, "chat-a") is False
    assert await registry.destinations_for(one) == ["chat-b"]


@pytest.mark.asyncio
async def test_add_destination_unknown_endpoint(registry) -> None:
    with pytest.raises(EndpointNotFoundError):
        await registry.add_destination(999, "chat-a")
