import asyncio
import base64
from urllib.parse import parse_qs

import httpx
import pytest
from unittest.mock import AsyncMock

from workdocs.domain.errors import AuthFailure
from workdocs.infrastructure.auth.oauth import OAuthService, TokenCache
from workdocs.infrastructure.resilience.api_retry import ApiRetryService


class TokenEndpoint:
    """Mock token endpoint answering with a queue of (status, json) responses."""

    def __init__(self, *responses, delay=0.0):
        self.responses = list(responses) or [(200, {"access_token": "token-1", "token_type": "Bearer"})]
        self.requests = []
        self.delay = delay

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        status, payload = self.responses[min(len(self.requests), len(self.responses)) - 1]
        return httpx.Response(status, json=payload)


@pytest.fixture
def token_cache(clock):
    return TokenCache(clock=clock)


@pytest.fixture
def make_service(sandbox_environment, token_cache):
    def factory(endpoint, **kwargs):
        client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
        kwargs.setdefault("retry_service", ApiRetryService(sleep=AsyncMock()))
        kwargs.setdefault("token_cache", token_cache)
        kwargs.setdefault("cleanup_delay", 0.01)
        return OAuthService(sandbox_environment, client, **kwargs)

    return factory


@pytest.mark.asyncio
async def test_refresh_request_uses_basic_auth_and_refresh_grant(make_service):
    endpoint = TokenEndpoint()
    service = make_service(endpoint)

    token = await service.get_access_token()

    assert token == "token-1"
    request = endpoint.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://auth.example.test/oauth2/token"
    expected_auth = base64.b64encode(b"client-id:client-secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected_auth}"
    form = parse_qs(request.content.decode())
    assert form == {"grant_type": ["refresh_token"], "refresh_token": ["refresh-token"]}


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh(make_service):
    endpoint = TokenEndpoint(delay=0.02)
    service = make_service(endpoint)

    tokens = await asyncio.gather(*(service.get_access_token() for _ in range(10)))

    assert tokens == ["token-1"] * 10
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_cached_token_is_reused_until_expiry(make_service, clock):
    endpoint = TokenEndpoint(
        (200, {"access_token": "token-1"}),
        (200, {"access_token": "token-2"}),
    )
    service = make_service(endpoint, token_ttl_seconds=3300)

    assert await service.get_access_token() == "token-1"
    clock.advance(3299)
    assert await service.get_access_token() == "token-1"
    assert len(endpoint.requests) == 1

    clock.advance(1)
    await asyncio.sleep(0.02)  # let the settled refresh handle be released
    assert await service.get_access_token() == "token-2"
    assert len(endpoint.requests) == 2


@pytest.mark.asyncio
async def test_server_expires_in_is_ignored(make_service, clock):
    endpoint = TokenEndpoint((200, {"access_token": "token-1", "expires_in": 10}))
    service = make_service(endpoint, token_ttl_seconds=600)

    await service.get_access_token()
    clock.advance(300)
    await service.get_access_token()

    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_refresh_handle_released_after_grace_window(make_service, token_cache):
    service = make_service(TokenEndpoint())

    await service.get_access_token()
    assert token_cache.get_refresh("sandbox") is not None

    await asyncio.sleep(0.05)
    assert token_cache.get_refresh("sandbox") is None


@pytest.mark.asyncio
async def test_release_keeps_newer_refresh(token_cache):
    loop = asyncio.get_running_loop()
    old, new = loop.create_future(), loop.create_future()
    token_cache.register_refresh("sandbox", old)
    token_cache.register_refresh("sandbox", new)

    token_cache.release_refresh("sandbox", old)

    assert token_cache.get_refresh("sandbox") is new


@pytest.mark.asyncio
async def test_missing_access_token_is_auth_failure(make_service):
    service = make_service(TokenEndpoint((200, {"token_type": "Bearer"})))

    with pytest.raises(AuthFailure, match="missing access_token"):
        await service.get_access_token()


@pytest.mark.asyncio
async def test_rejected_credentials_fail_without_retry(make_service):
    endpoint = TokenEndpoint((401, {"error": "invalid_grant"}))
    service = make_service(endpoint)

    with pytest.raises(AuthFailure):
        await service.get_access_token()
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_server_errors_are_retried(make_service):
    endpoint = TokenEndpoint(
        (503, {"error": "unavailable"}),
        (200, {"access_token": "token-after-retry"}),
    )
    service = make_service(endpoint)

    assert await service.get_access_token() == "token-after-retry"
    assert len(endpoint.requests) == 2


@pytest.mark.asyncio
async def test_exhausted_retries_raise_auth_failure(make_service):
    endpoint = TokenEndpoint((500, {}))
    service = make_service(endpoint)

    with pytest.raises(AuthFailure) as exc_info:
        await service.get_access_token()
    assert len(endpoint.requests) == 3
    assert exc_info.value.__cause__ is not None


@pytest.mark.asyncio
async def test_waiters_receive_the_same_failure(make_service):
    endpoint = TokenEndpoint((400, {}), delay=0.02)
    service = make_service(endpoint)

    results = await asyncio.gather(*(service.get_access_token() for _ in range(3)), return_exceptions=True)

    assert all(isinstance(r, AuthFailure) for r in results)
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_cache_is_shared_between_service_instances(make_service):
    endpoint = TokenEndpoint()
    first = make_service(endpoint)
    second = make_service(endpoint)

    await first.get_access_token()
    await second.get_access_token()

    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_clear_cache_and_status(make_service, token_cache):
    service = make_service(TokenEndpoint())
    await service.get_access_token()

    assert service.get_cache_status() == [{"environment": "sandbox", "expires_in": "3300s"}]

    service.clear_cache("sandbox")
    assert token_cache.get_valid("sandbox") is None
    assert service.get_cache_status() == []
