"""
api.deps
========

FastAPI dependency providers.

Each request gets its own database session and a **DBCaseGateway** over
it, closed when the response is sent, so worker threads never share an
identity map.  The lookup provider is a singleton with its own session
per fetch, so the lookup snapshot lives for the whole server session.
Tests override `get_service` with a registry-backed one.
"""

from functools import lru_cache
from typing import Iterator

from fastapi import Depends
from sqlmodel import Session

from visadesk.db import SessionLocal, load_lookups
from visadesk.gateway_db import DBCaseGateway
from visadesk.lookups import LookupProvider, LookupSnapshot
from visadesk.service import CaseService
from visadesk.settings import settings


@lru_cache
def get_settings():
    """Return application settings."""
    return settings


def get_session() -> Iterator[Session]:
    with SessionLocal() as session:
        yield session


def get_gateway(session: Session = Depends(get_session)) -> DBCaseGateway:
    """DB-backed case gateway bound to the request's session."""
    return DBCaseGateway(session)


def _fetch_lookups() -> LookupSnapshot:
    with SessionLocal() as s:
        return load_lookups(s)


@lru_cache
def get_lookup_provider() -> LookupProvider:
    """Session lookup provider shared by every request."""
    return LookupProvider(_fetch_lookups)


def get_service(
    gateway: DBCaseGateway = Depends(get_gateway),
    lookups: LookupProvider = Depends(get_lookup_provider),
) -> CaseService:
    return CaseService(gateway, lookups, get_settings())
