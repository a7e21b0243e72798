import asyncio

from services.database import KeyValueStore


async def test_put_overwrites_value_and_ttl(store, clock):
    await store.put("album:AF1QipA", {"v": 1}, ttl_seconds=10)
    await store.put("album:AF1QipA", {"v": 2}, ttl_seconds=100)

    clock.advance(50)
    assert await store.get("album:AF1QipA") == {"v": 2}


async def test_put_without_ttl_never_expires(store, clock):
    await store.put("health:album_fetch:last_alert", 1700000000.0)

    clock.advance(10 * 365 * 24 * 3600)
    assert await store.get("health:album_fetch:last_alert") == 1700000000.0


async def test_expired_entry_reads_as_missing(store, clock):
    await store.put("album-alias:QKGRYqfdS15bj8Kr5", "AF1QipA", ttl_seconds=60)

    clock.advance(60)
    assert await store.get("album-alias:QKGRYqfdS15bj8Kr5") is None


async def test_concurrent_first_writes_to_one_key_both_succeed(store: KeyValueStore):
    await asyncio.gather(*(store.put("album:AF1QipRace", {"writer": i}) for i in range(5)))

    assert (await store.get("album:AF1QipRace"))["writer"] in range(5)
