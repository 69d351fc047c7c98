"""
HTTP Log Client

Talks to a JSON gateway in front of the log.

ENDPOINTS:
==========
POST /read                  body: IndexQuery params -> newline-delimited JSON
GET  /get?id=&meta=&private=                        -> message JSON (404 = unknown)
GET  /whoami                                        -> {"id": ...}
GET  /about/social-value?key=&dest=                 -> value JSON (may be null)
GET  /tangle/branch?root=                           -> [key, ...]
POST /publish               body: content JSON      -> message JSON

PRINCIPLES:
===========
1. Transport failures, error statuses and undecodable bodies are UpstreamUnavailable
2. 404 on /get is NotFound
3. No retries: a failed read fails the whole request
"""

from __future__ import annotations
from typing import Any, AsyncIterator, List, Mapping, Optional, Union
import json

import httpx

from ..contracts.base import NotFound, UpstreamUnavailable
from ..query.adapter import IndexQuery
from .client import LogClient, RawMessage


class HttpLogClient(LogClient):
    """
    LogClient over httpx.AsyncClient.

    The client is created once and reused; close() releases the pool.
    Pass `transport` to run against an in-process transport in tests.
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: str = "feedweave/1.0"
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": user_agent}
        )

    @staticmethod
    def _check(response: httpx.Response) -> None:
        if response.status_code >= 500:
            raise UpstreamUnavailable(
                f"log gateway returned HTTP {response.status_code}",
                url=str(response.request.url)
            )
        if response.status_code >= 400:
            raise UpstreamUnavailable(
                f"log gateway rejected request: HTTP {response.status_code}",
                url=str(response.request.url)
            )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                f"corrupt gateway response: {e}",
                url=str(response.request.url)
            ) from e

    async def _get_json(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"log gateway unreachable: {e}") from e
        self._check(response)
        return self._decode(response)

    async def read(self, query: IndexQuery) -> AsyncIterator[RawMessage]:
        try:
            async with self._client.stream("POST", "/read", json=query.to_params()) as response:
                self._check(response)
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        yield json.loads(line)
                    except json.JSONDecodeError as e:
                        raise UpstreamUnavailable(f"corrupt read stream: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"log read failed: {e}") from e

    async def get(self, key: str, meta: bool = True, private: bool = True) -> RawMessage:
        params = {"id": key, "meta": str(meta).lower(), "private": str(private).lower()}
        try:
            response = await self._client.get("/get", params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"log gateway unreachable: {e}") from e
        if response.status_code == 404:
            raise NotFound(key)
        self._check(response)
        return self._decode(response)

    async def whoami(self) -> Mapping[str, Any]:
        return await self._get_json("/whoami")

    async def social_value(self, key: str, dest: str) -> Union[str, Mapping[str, Any], None]:
        return await self._get_json("/about/social-value", {"key": key, "dest": dest})

    async def branch(self, root: str) -> List[str]:
        return list(await self._get_json("/tangle/branch", {"root": root}))

    async def publish(self, content: Mapping[str, Any]) -> RawMessage:
        try:
            response = await self._client.post("/publish", json=dict(content))
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"publish failed: {e}") from e
        self._check(response)
        return self._decode(response)

    async def close(self) -> None:
        await self._client.aclose()
