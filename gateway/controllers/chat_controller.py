# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Chatbot message, report and health endpoints.
Thin HTTP layer — delegates ALL logic to ChatService / ReportService / HealthService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from gateway.core.config import settings
from gateway.core.dependencies import (
    get_chat_service,
    get_health_service,
    get_optional_caller,
    get_report_service,
)
from gateway.core.logging import get_logger
from gateway.models.domain import Caller
from gateway.models.errors import (
    AuthRequired,
    DeliveryError,
    UpstreamError,
    UpstreamExhausted,
    ValidationError,
)
from gateway.schemas.chat import (
    AuthRequiredResponse,
    ChatbotHealthResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    ChatMetadata,
    ErrorResponse,
    ReportRequest,
    ReportResponse,
)
from gateway.services.chat_service import ChatService
from gateway.services.health_service import HealthService
from gateway.services.report_service import ReportService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/chatbot", tags=["Chatbot"])


def _error(request: Request, status_code: int, error: str, exc: Exception | None = None) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        details=str(exc) if exc is not None and settings.DEBUG else None,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "/message",
    response_model=ChatMessageResponse | AuthRequiredResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def post_message(
    payload: ChatMessageRequest,
    request: Request,
    caller: Optional[Caller] = Depends(get_optional_caller),
    service: ChatService = Depends(get_chat_service),
):
    """Answer one message, grounded on a fresh snapshot of the organization's data."""
    try:
        reply = await service.process_message(payload.message, payload.history(), caller)
    except ValidationError as e:
        return _error(request, 400, str(e))
    except AuthRequired as e:
        return AuthRequiredResponse(message=e.message)
    except (UpstreamError, UpstreamExhausted) as e:
        logger.error("Chat dispatch failed: %s", e)
        return _error(request, 500, "Failed to process your message. Please try again.", e)
    return ChatMessageResponse(response=reply.response, metadata=ChatMetadata(**reply.metadata))


@router.post(
    "/send-report",
    response_model=ReportResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ReportResponse}},
)
async def send_report(
    payload: ReportRequest,
    request: Request,
    caller: Optional[Caller] = Depends(get_optional_caller),
    service: ReportService = Depends(get_report_service),
):
    """Forward the caller's message to the organization's inbox."""
    try:
        await service.send_report(payload.content, payload.sender_name, payload.sender_email, caller)
    except ValidationError as e:
        return _error(request, 400, str(e))
    except DeliveryError as e:
        logger.error("Report delivery failed: %s", e)
        body = ReportResponse(success=False, message="Failed to send your message. Please try again later.")
        return JSONResponse(status_code=500, content=body.model_dump())
    return ReportResponse(message="Message sent! The team will get back to you soon.")


@router.get("/health", response_model=ChatbotHealthResponse)
async def chatbot_health(service: HealthService = Depends(get_health_service)):
    """Deep probe of the generation backend and the data store; 503 when either is down."""
    result = await service.check()
    status_code = 200 if result["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=ChatbotHealthResponse(**result).model_dump())
