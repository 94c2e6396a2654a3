# tests/test_oauth.py
import json

import httpx
import pytest

from usage_monitor.acquisition.oauth import OAuthUsageFetcher
from usage_monitor.core.errors import CredentialsNotFoundError, UsageEndpointError

ENDPOINT = "https://api.example.test/api/oauth/usage"


def write_credentials(config_dir, token="tok-123"):
    path = config_dir / ".credentials.json"
    path.write_text(json.dumps({"claudeAiOauth": {"accessToken": token}}))
    return path


def make_fetcher(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OAuthUsageFetcher(endpoint=ENDPOINT, client=client, use_keychain=False), client


@pytest.mark.asyncio
async def test_acquire_maps_windows(tmp_path):
    write_credentials(tmp_path)
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["beta"] = request.headers["anthropic-beta"]
        return httpx.Response(
            200,
            json={
                "five_hour": {"utilization": 41.6, "resets_at": "2026-03-04T02:00:00Z"},
                "seven_day": {"utilization": 7, "resets_at": "2026-03-04T20:00:00Z"},
            },
        )

    fetcher, client = make_fetcher(handler)
    async with client:
        fields = await fetcher.acquire(str(tmp_path))

    assert seen == {"auth": "Bearer tok-123", "beta": "oauth-2025-04-20"}
    assert fields.session_pct == 42
    assert fields.weekly_pct == 7
    assert fields.session_reset == "2026-03-04T02:00:00Z"
    assert fields.weekly_reset == "2026-03-04T20:00:00Z"


@pytest.mark.asyncio
async def test_missing_credentials(tmp_path):
    fetcher = OAuthUsageFetcher(endpoint=ENDPOINT, use_keychain=False)
    with pytest.raises(CredentialsNotFoundError):
        await fetcher.acquire(str(tmp_path))


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"claudeAiOauth": None}, {"claudeAiOauth": "tok"}, []])
async def test_malformed_credentials_file(tmp_path, payload):
    (tmp_path / ".credentials.json").write_text(json.dumps(payload))
    fetcher = OAuthUsageFetcher(endpoint=ENDPOINT, use_keychain=False)
    with pytest.raises(CredentialsNotFoundError):
        await fetcher.acquire(str(tmp_path))


@pytest.mark.asyncio
async def test_unauthorized_maps_to_endpoint_error(tmp_path):
    write_credentials(tmp_path)
    fetcher, client = make_fetcher(lambda request: httpx.Response(401))
    async with client:
        with pytest.raises(UsageEndpointError) as excinfo:
            await fetcher.acquire(str(tmp_path))
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_unexpected_payload(tmp_path):
    write_credentials(tmp_path)
    fetcher, client = make_fetcher(lambda request: httpx.Response(200, json={"other": 1}))
    async with client:
        with pytest.raises(UsageEndpointError):
            await fetcher.acquire(str(tmp_path))


def test_parse_usage_response_clamps_and_defaults():
    fields = OAuthUsageFetcher.parse_usage_response(
        {"five_hour": {"utilization": 130.2}, "seven_day": None}
    )
    assert fields.session_pct == 100
    assert fields.session_reset == ""
    assert fields.weekly_pct == 0
