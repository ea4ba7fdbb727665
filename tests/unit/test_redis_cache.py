import asyncio
from pharmsearch.infra.cache.redis_cache import RedisCache


class StubRedis:
    """Just the redis.asyncio.Redis calls RedisCache makes."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        n = 0
        for k in keys:
            n += self.data.pop(k, None) is not None
        return n

    async def ping(self):
        return True


async def _run():
    r = StubRedis()
    c = RedisCache(r)
    await c.set_json("t:x", {"a": 1, "name": "Paracétamol"}, ttl=30)
    assert (await c.get_json("t:x")) == {"a": 1, "name": "Paracétamol"}
    assert r.ttls["t:x"] == 30
    assert "Paracétamol" in r.data["t:x"]  # stored unescaped
    assert await c.get_json("t:missing") is None
    assert await c.ping()
    assert await c.delete("t:x", "t:missing") == 1
    assert await c.get_json("t:x") is None

def test_cache_ops():
    asyncio.run(_run())

def test_default_ttl_applies():
    r = StubRedis()
    asyncio.run(RedisCache(r).set_json("t:y", [1, 2]))
    assert r.ttls["t:y"] == 300
