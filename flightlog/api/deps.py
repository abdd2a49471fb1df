from fastapi import Request

from flightlog.context import AppContext
from flightlog.db.repository import FlightRepository
from flightlog.importer import FlightImporter
from flightlog.keys.resolver import KeyResolver


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_repository(request: Request) -> FlightRepository:
    return get_context(request).repository


def get_importer(request: Request) -> FlightImporter:
    return get_context(request).importer


def get_key_resolver(request: Request) -> KeyResolver:
    return get_context(request).key_resolver
