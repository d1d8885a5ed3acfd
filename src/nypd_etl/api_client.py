from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

from .errors import CredentialError
from .logging_utils import log_json

T = TypeVar("T")


@dataclass
class ApiConfig:
    base_url: str
    client_id: str
    timeout_seconds: int = 30
    max_concurrency: int = 10
    token_path: str = "/oauth2/token"
    auth_cookie: str = "user"
    log_every_requests: int = 500


class ConcurrencyLimiter:
    """Admission gate shared by every request of a run.

    At most ``max_concurrency`` units of work run at once; the rest wait on the
    semaphore and are released first-come first-served.
    """

    def __init__(self, max_concurrency: int) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.in_flight = 0
        self.peak = 0

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        async with self._semaphore:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            try:
                return await fn(*args, **kwargs)
            finally:
                self.in_flight -= 1


class ApiClient:
    def __init__(
        self,
        cfg: ApiConfig,
        limiter: ConcurrencyLimiter,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cfg = cfg
        self.token = token
        self._limiter = limiter
        self._client = httpx.AsyncClient(
            base_url=cfg.base_url,
            timeout=cfg.timeout_seconds,
            transport=transport,
        )
        self._logger: Optional[logging.Logger] = None
        self.request_count = 0

    def set_logger(self, logger: logging.Logger) -> None:
        self._logger = logger

    async def close(self) -> None:
        await self._client.aclose()

    async def authenticate(self) -> str:
        """Obtain the session token used on every later request.

        A token already set (e.g. from ``NYPD_OIP_TOKEN``) is reused as is.
        """
        if self.token:
            return self.token
        data = {"grant_type": "client_credentials", "scope": f"clientId={self.cfg.client_id}"}
        try:
            payload = await self._limiter.run(self._send, "POST", self.cfg.token_path, data=data)
        except (httpx.HTTPError, ValueError) as exc:
            raise CredentialError(f"token request failed: {exc}") from exc
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise CredentialError("token response did not contain access_token")
        self.token = token
        return token

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._limiter.run(self._send, "GET", path, params=params or {})

    async def post_json(self, path: str, body: Any) -> Any:
        return await self._limiter.run(self._send, "POST", path, json=body)

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {}
        if self.token:
            headers["Cookie"] = f"{self.cfg.auth_cookie}={self.token}"
        if self._logger:
            self._logger.debug(
                "http_request_start",
                extra={"extra": {"method": method, "path": path, "params": kwargs.get("params")}},
            )
        resp = await self._client.request(method, path, headers=headers, **kwargs)
        self._tick()
        resp.raise_for_status()
        return resp.json()

    def _tick(self) -> None:
        self.request_count += 1
        if self._logger and self.request_count % self.cfg.log_every_requests == 0:
            log_json(
                self._logger,
                "request_progress",
                requests=self.request_count,
                in_flight=self._limiter.in_flight,
            )
