from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import httpx
import orjson

from flightlog.exceptions import (
    CredentialMissing,
    KeyServiceResponseError,
    KeyServiceTransportError,
)
from flightlog.keys.resolver import KeyResolver
from flightlog.parser.constants import AES_KEY_SIZE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeychainRequest:
    """File-derived material identifying which keychain decrypts a log"""
    version: int
    keychain_id: bytes
    serial: Optional[str] = None

    @property
    def identity(self) -> Tuple[int, bytes]:
        # Logs of the same firmware generation share one keychain
        return (self.version, self.keychain_id)


class KeyServiceClient:
    """
    Client for the vendor keychain endpoint.

    Transport failures and error payloads are raised as distinct errors and
    never retried here.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def fetch_keychain(self, api_key: str, request: KeychainRequest) -> bytes:
        payload = {
            "version": request.version,
            "keychainId": request.keychain_id.hex(),
            "serial": request.serial,
        }
        try:
            response = await self._client.post(
                self.base_url,
                content=orjson.dumps(payload),
                headers={"Api-Key": api_key, "Content-Type": "application/json"},
            )
        except httpx.TransportError as e:
            logger.error(f"Key service unreachable: {e}")
            raise KeyServiceTransportError(f"HTTP error: {e}") from e

        try:
            body = orjson.loads(response.content) if response.content else {}
        except orjson.JSONDecodeError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = body.get("message") or response.text or response.reason_phrase
        if response.status_code >= 400:
            raise KeyServiceResponseError(message, status_code=response.status_code)
        if body.get("code", 0) != 0:
            raise KeyServiceResponseError(message, status_code=response.status_code)

        key_hex = (body.get("data") or {}).get("key")
        try:
            key = bytes.fromhex(key_hex)
        except (TypeError, ValueError):
            raise KeyServiceResponseError("response carries no usable key")
        if len(key) != AES_KEY_SIZE:
            raise KeyServiceResponseError(f"key has {len(key)} bytes, expected {AES_KEY_SIZE}")

        logger.info(f"Fetched keychain for log version {request.version}")
        return key

    async def aclose(self) -> None:
        await self._client.aclose()


class KeychainProvider:
    """
    Hands out decryption keys, fetching each keychain at most once at a time.

    Concurrent callers asking for the same keychain await one shared fetch.
    Successful keys are cached, failures are not.
    """

    def __init__(self, resolver: KeyResolver, client: KeyServiceClient):
        self._resolver = resolver
        self._client = client
        self._lock = asyncio.Lock()
        self._keys: Dict[Tuple[int, bytes], bytes] = {}
        self._inflight: Dict[Tuple[int, bytes], asyncio.Task] = {}

    async def get_key(self, request: KeychainRequest) -> bytes:
        api_key = self._resolver.get_key()
        if api_key is None:
            raise CredentialMissing()

        ident = request.identity
        async with self._lock:
            key = self._keys.get(ident)
            if key is not None:
                return key
            task = self._inflight.get(ident)
            if task is None:
                task = asyncio.create_task(self._fetch(api_key, request))
                self._inflight[ident] = task

        # Shield so one cancelled waiter does not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch(self, api_key: str, request: KeychainRequest) -> bytes:
        ident = request.identity
        try:
            key = await self._client.fetch_keychain(api_key, request)
            async with self._lock:
                self._keys[ident] = key
            return key
        finally:
            async with self._lock:
                self._inflight.pop(ident, None)
