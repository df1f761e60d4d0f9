"""OAuth credential management for Workday environments.

Exchanges the long-lived refresh token of an environment for a short-lived
bearer token and caches it. Concurrent callers that find no valid token
share a single in-flight refresh instead of each issuing their own request.

The token lifetime is a fixed window counted from the moment the token was
received, independent of the `expires_in` advertised by the server.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import httpx

from workdocs.domain.errors import AuthFailure
from workdocs.domain.events.api_events import TokenRefreshed, dispatch_event
from workdocs.domain.models.common import AccessToken
from workdocs.infrastructure.config.settings import WorkdayEnvironment
from workdocs.infrastructure.resilience.api_retry import ApiRetryService, RetryPolicy
from workdocs.infrastructure.workday import transport

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_SECONDS = 55 * 60
# Grace window before an in-flight refresh handle is dropped after it settles
REFRESH_CLEANUP_DELAY_SECONDS = 0.1
TOKEN_RETRY_POLICY = RetryPolicy(max_attempts=3)


@dataclass
class CachedToken:
    token: AccessToken
    expiry: float  # clock() reading after which the token is not returned


class TokenCache:
    """Bearer tokens and in-flight refreshes, keyed by environment name.

    Owned explicitly by whoever builds the OAuthService; one shared default
    instance gives process-wide reuse across service instances.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._tokens: Dict[str, CachedToken] = {}
        self._refreshes: Dict[str, "asyncio.Task[AccessToken]"] = {}

    def get_valid(self, scope: str) -> Optional[CachedToken]:
        """Returns the cached token while `now < expiry`, else None."""
        cached = self._tokens.get(scope)
        if cached and self.clock() < cached.expiry:
            return cached
        return None

    def store(self, scope: str, token: AccessToken, ttl_seconds: float) -> CachedToken:
        cached = CachedToken(token=token, expiry=self.clock() + ttl_seconds)
        self._tokens[scope] = cached
        return cached

    def get_refresh(self, scope: str) -> "Optional[asyncio.Task[AccessToken]]":
        return self._refreshes.get(scope)

    def register_refresh(self, scope: str, task: "asyncio.Task[AccessToken]") -> None:
        self._refreshes[scope] = task

    def release_refresh(self, scope: str, task: "asyncio.Task[AccessToken]") -> None:
        """Drops the handle, unless a newer refresh has replaced it."""
        if self._refreshes.get(scope) is task:
            del self._refreshes[scope]

    def clear(self, scope: Optional[str] = None) -> None:
        """Clears one environment, or everything when scope is None."""
        if scope is None:
            self._tokens.clear()
            self._refreshes.clear()
        else:
            self._tokens.pop(scope, None)
            self._refreshes.pop(scope, None)

    def status(self) -> List[Dict[str, str]]:
        """Remaining lifetime per environment, for debugging."""
        now = self.clock()
        return [
            {
                "environment": scope,
                "expires_in": f"{round(cached.expiry - now)}s" if cached.expiry > now else "expired",
            }
            for scope, cached in self._tokens.items()
        ]


shared_token_cache = TokenCache()


class OAuthService:
    """Provides bearer tokens for one Workday environment."""

    def __init__(
        self,
        environment: WorkdayEnvironment,
        http_client: httpx.AsyncClient,
        retry_service: Optional[ApiRetryService] = None,
        token_cache: Optional[TokenCache] = None,
        token_ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS,
        request_timeout: float = transport.DEFAULT_REQUEST_TIMEOUT_SECONDS,
        cleanup_delay: float = REFRESH_CLEANUP_DELAY_SECONDS,
    ):
        """Initializes the OAuthService.

        Args:
            environment: Connection settings and secrets of the environment.
            http_client: Shared async HTTP client.
            retry_service: Retries the token request (3 attempts by default).
            token_cache: Cache to use; defaults to the process-wide one.
            token_ttl_seconds: Validity window assumed for every new token.
            request_timeout: Wall-clock limit for one token request.
            cleanup_delay: Grace window before a settled refresh handle is dropped.
        """
        if token_ttl_seconds <= 0:
            raise ValueError("token_ttl_seconds must be positive")
        self.environment = environment
        self.http_client = http_client
        self.retry_service = retry_service or ApiRetryService()
        self.token_cache = token_cache if token_cache is not None else shared_token_cache
        self.token_ttl_seconds = token_ttl_seconds
        self.request_timeout = request_timeout
        self.cleanup_delay = cleanup_delay

    async def get_access_token(self) -> AccessToken:
        """Returns a valid bearer token, refreshing it at most once concurrently.

        Raises:
            AuthFailure: If the refresh failed.
        """
        scope = self.environment.name

        cached = self.token_cache.get_valid(scope)
        if cached:
            logger.debug(
                f"Reusing cached access token for {scope} "
                f"(expires in {round(cached.expiry - self.token_cache.clock())}s)"
            )
            return cached.token

        in_flight = self.token_cache.get_refresh(scope)
        if in_flight is not None:
            logger.debug(f"Token refresh already in progress for {scope}, waiting...")
            # shield: a cancelled waiter must not cancel the shared refresh
            return await asyncio.shield(in_flight)

        task = asyncio.ensure_future(self._fetch_new_token())
        self.token_cache.register_refresh(scope, task)
        task.add_done_callback(self._schedule_release)
        return await asyncio.shield(task)

    async def ensure_authenticated(self) -> None:
        await self.get_access_token()

    def clear_cache(self, environment: Optional[str] = None) -> None:
        """Drops cached tokens for one environment, or for all of them."""
        self.token_cache.clear(environment)

    def get_cache_status(self) -> List[Dict[str, str]]:
        return self.token_cache.status()

    def _schedule_release(self, task: "asyncio.Task[AccessToken]") -> None:
        task.get_loop().call_later(
            self.cleanup_delay, self.token_cache.release_refresh, self.environment.name, task
        )

    async def _fetch_new_token(self) -> AccessToken:
        scope = self.environment.name
        logger.info("Getting new access token using refresh token", extra={"environment": scope})

        if not self.environment.refresh_token:
            raise AuthFailure(f"Refresh token not found for environment: {scope}")

        try:
            response = await self.retry_service.execute_with_retry(
                self._request_token,
                policy=TOKEN_RETRY_POLICY,
                operation_name="OAuth token request",
            )
            payload = response.json()
        except Exception as e:
            logger.error(
                "Failed to obtain access token",
                extra={
                    "environment": scope,
                    "error_type": type(e).__name__,
                    "status_code": getattr(e, "status_code", None),
                    "url": self.environment.token_url,
                },
            )
            raise AuthFailure("OAuth authentication failed - check credentials and network connectivity") from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            logger.error("Invalid OAuth response: missing access_token", extra={"environment": scope})
            raise AuthFailure("Invalid OAuth response: missing access_token")

        cached = self.token_cache.store(scope, AccessToken(token), self.token_ttl_seconds)
        token_type = payload.get("token_type")
        logger.info(
            "Successfully obtained access token",
            extra={
                "environment": scope,
                "expires_in": f"{self.token_ttl_seconds:.0f}s",
                "token_type": token_type,
            },
        )
        dispatch_event(TokenRefreshed(
            environment=scope, valid_for_seconds=self.token_ttl_seconds, token_type=token_type
        ))
        return cached.token

    async def _request_token(self) -> httpx.Response:
        return await transport.post(
            self.http_client,
            self.environment.token_url,
            timeout=self.request_timeout,
            data={
                "grant_type": "refresh_token",
                "refresh_token": self.environment.refresh_token,
            },
            auth=(self.environment.client_id, self.environment.client_secret),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
