"""Unit tests for the reference data client and loader."""

import aiohttp
import pytest

from pinranks.cache import ReferenceCache
from pinranks.config import EngineConfig
from pinranks.errors import DataUnavailable
from pinranks.reference_data import ReferenceDataClient, ReferenceDataLoader
from pinranks.retry import RetryPolicy

pytestmark = pytest.mark.unit

MACHINES = [
    {"opdb_id": "G1-M1", "name": "Alpha", "manufacturer": {"name": "Stern"}, "display": "lcd"},
    {"opdb_id": "G2-M1", "name": "Beta", "manufacturer": {"name": "Bally"}, "display": "reels"},
]
GROUPS = [{"opdb_id": "G1", "name": "Alpha"}, {"opdb_id": "G2", "name": "Beta"}]


class FakeResponse:
    def __init__(self, status, payload=None, reason="OK"):
        self.status = status
        self.payload = payload
        self.reason = reason

    async def json(self, content_type=None):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Scripted stand-in for aiohttp.ClientSession.get."""

    def __init__(self, script):
        self.script = {url: list(responses) for url, responses in script.items()}
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        outcome = self.script[url].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def fast_policy(attempts=3):
    return RetryPolicy(max_attempts=attempts, base_delay=0.0, max_delay=0.0)


def make_client(script, attempts=3):
    config = EngineConfig(entities_url="https://data/machines.json", groups_url="https://data/groups.json")
    return ReferenceDataClient(FakeSession(script), config, fast_policy(attempts))


class TestReferenceDataClient:
    async def test_fetches_json(self):
        client = make_client({"https://data/machines.json": [FakeResponse(200, MACHINES)]})
        assert await client.fetch_entities() == MACHINES

    async def test_uses_bounded_timeout(self):
        client = make_client({"https://data/groups.json": [FakeResponse(200, GROUPS)]})
        await client.fetch_groups()
        _, timeout = client.session.calls[0]
        assert timeout.total == 30.0

    async def test_retries_server_errors(self):
        client = make_client({
            "https://data/groups.json": [
                FakeResponse(503, reason="Service Unavailable"),
                aiohttp.ClientConnectionError("reset"),
                FakeResponse(200, GROUPS),
            ]
        })
        assert await client.fetch_groups() == GROUPS
        assert len(client.session.calls) == 3

    async def test_timeout_is_retryable(self):
        client = make_client({
            "https://data/groups.json": [TimeoutError(), FakeResponse(200, GROUPS)]
        })
        assert await client.fetch_groups() == GROUPS

    async def test_exhaustion_raises_data_unavailable(self):
        client = make_client(
            {"https://data/machines.json": [FakeResponse(500, reason="Boom")] * 2},
            attempts=2,
        )
        with pytest.raises(DataUnavailable) as excinfo:
            await client.fetch_entities()
        assert excinfo.value.key == "machines"


class StubClient:
    def __init__(self):
        self.entity_calls = 0
        self.group_calls = 0

    async def fetch_entities(self):
        self.entity_calls += 1
        return MACHINES

    async def fetch_groups(self):
        self.group_calls += 1
        return GROUPS


class TestReferenceDataLoader:
    async def test_load_parses_models(self):
        loader = ReferenceDataLoader(StubClient(), ReferenceCache())
        entities, groups = await loader.load()
        assert [e.id for e in entities] == ["G1-M1", "G2-M1"]
        assert entities[0].manufacturer == "Stern"
        assert [g.display_name for g in groups] == ["Alpha", "Beta"]

    async def test_load_is_cached(self):
        client = StubClient()
        loader = ReferenceDataLoader(client, ReferenceCache())
        await loader.load()
        await loader.load()
        assert client.entity_calls == 1
        assert client.group_calls == 1

    async def test_refresh_refetches(self):
        client = StubClient()
        loader = ReferenceDataLoader(client, ReferenceCache())
        await loader.load()
        await loader.refresh()
        await loader.load()
        assert client.entity_calls == 2
