from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from flightlog.config import Settings
from flightlog.db.repository import FlightRepository
from flightlog.db.session import build_engine, build_session_factory, close_db, init_db
from flightlog.importer import FlightImporter
from flightlog.keys.resolver import KeyResolver
from flightlog.keys.service import KeychainProvider, KeyServiceClient
from flightlog.parser.decoder import LogDecoder

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Long-lived collaborators, built once and passed to whoever needs them."""
    settings: Settings
    engine: AsyncEngine
    key_resolver: KeyResolver
    key_service: KeyServiceClient
    keychains: KeychainProvider
    decoder: LogDecoder
    repository: FlightRepository
    importer: FlightImporter

    async def start(self) -> None:
        await init_db(self.engine)

    async def close(self) -> None:
        await self.key_service.aclose()
        await close_db(self.engine)


def build_context(
    settings: Settings,
    key_resolver: Optional[KeyResolver] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AppContext:
    settings.app_data_dir.mkdir(parents=True, exist_ok=True)

    engine = build_engine(settings.resolved_database_url)
    repository = FlightRepository(build_session_factory(engine))

    key_resolver = key_resolver or KeyResolver(settings.app_data_dir)
    key_service = KeyServiceClient(
        settings.key_service_url,
        timeout=settings.key_service_timeout,
        transport=transport,
    )
    keychains = KeychainProvider(key_resolver, key_service)
    decoder = LogDecoder(keychains)

    logger.info(f"Using database {engine.url.render_as_string(hide_password=True)}")
    return AppContext(
        settings=settings,
        engine=engine,
        key_resolver=key_resolver,
        key_service=key_service,
        keychains=keychains,
        decoder=decoder,
        repository=repository,
        importer=FlightImporter(decoder, repository),
    )
