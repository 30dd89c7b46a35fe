# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection — wire repositories, clients and services.
Built once in the app lifespan; the credential pool and throttler are
process-wide and shared by every request.
"""

import asyncio
from typing import Optional

import httpx
from fastapi import Request
from sqlalchemy.engine import Engine

from gateway.core.config import settings
from gateway.core.database import build_engine
from gateway.core.logging import get_logger
from gateway.models.domain import Caller
from gateway.repositories.article_repository import ArticleRepository
from gateway.repositories.certificate_repository import CertificateRepository
from gateway.repositories.event_repository import EventRepository
from gateway.repositories.roster_repository import RosterRepository
from gateway.services.auth_service import CallerResolver, extract_token
from gateway.services.chat_service import ChatService
from gateway.services.credential_pool import CredentialPool
from gateway.services.dispatcher import TwoStageDispatcher
from gateway.services.gemini_client import GeminiClient
from gateway.services.health_service import HealthService
from gateway.services.mail_client import MailClient
from gateway.services.report_service import ReportService
from gateway.services.retry import RetryOrchestrator
from gateway.services.snapshot_service import SnapshotService
from gateway.services.throttler import DispatchThrottler

logger = get_logger(__name__)

_engine: Engine | None = None
_http_client: httpx.AsyncClient | None = None
_chat_service: ChatService | None = None
_report_service: ReportService | None = None
_health_service: HealthService | None = None
_caller_resolver: CallerResolver | None = None


def init_services(engine: Engine | None = None,
                  http_client: httpx.AsyncClient | None = None,
                  credentials: list[str] | None = None) -> None:
    """Startup wiring. Raises RuntimeError when no upstream credential is configured."""
    global _engine, _http_client, _chat_service, _report_service, _health_service, _caller_resolver

    credentials = settings.GEMINI_API_KEYS if credentials is None else credentials
    try:
        pool = CredentialPool(credentials)
    except ValueError as exc:
        raise RuntimeError(str(exc)) from exc

    _engine = engine or build_engine()
    _http_client = http_client or httpx.AsyncClient(timeout=settings.GEMINI_TIMEOUT)

    roster_repo = RosterRepository(_engine)
    snapshots = SnapshotService(
        roster_repo=roster_repo,
        event_repo=EventRepository(_engine),
        article_repo=ArticleRepository(_engine),
        certificate_repo=CertificateRepository(_engine),
    )
    client = GeminiClient(_http_client)
    orchestrator = RetryOrchestrator(
        client=client,
        pool=pool,
        throttler=DispatchThrottler(settings.MIN_REQUEST_INTERVAL),
    )

    _chat_service = ChatService(snapshots, TwoStageDispatcher(orchestrator, snapshots))
    _report_service = ReportService(MailClient(_http_client))
    _health_service = HealthService(client, pool, snapshots)
    _caller_resolver = CallerResolver(roster_repo)

    logger.info(
        "Services initialised — %d API key(s), model=%s, throttle=%.2fs",
        len(pool), settings.GEMINI_MODEL, settings.MIN_REQUEST_INTERVAL,
    )


async def close_services() -> None:
    global _http_client, _engine
    if _http_client:
        await _http_client.aclose()
        _http_client = None
    if _engine:
        _engine.dispose()
        _engine = None


# ── FastAPI dependency functions ──
def get_chat_service() -> ChatService:
    assert _chat_service is not None
    return _chat_service


def get_report_service() -> ReportService:
    assert _report_service is not None
    return _report_service


def get_health_service() -> HealthService:
    assert _health_service is not None
    return _health_service


async def get_optional_caller(request: Request) -> Optional[Caller]:
    """Signed-in caller when the request carries a valid session token, else None."""
    token = extract_token(request.cookies.get("token"), request.headers.get("Authorization"))
    if not token or _caller_resolver is None:
        return None
    return await asyncio.to_thread(_caller_resolver.resolve, token)
