"""FastAPI route definitions for the Digital Saathi API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from saathi.api.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    MessageOut,
    ServiceDetail,
    ServiceSummary,
)
from saathi.errors import (
    ConversationNotFound,
    ModelRateLimited,
    ModelUnavailable,
    PersistenceError,
    SaathiError,
    UnknownTool,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# HTTP status and user-facing apology for each engine error
_ERROR_RESPONSES: dict[type[SaathiError], tuple[int, str]] = {
    ValidationError: (
        400,
        "❌ कृपया अपना संदेश लिखें। (Please provide a message.)",
    ),
    ConversationNotFound: (
        404,
        "यह बातचीत नहीं मिली। कृपया नई बातचीत शुरू करें। "
        "(This conversation was not found. Please start a new one.)",
    ),
    ModelUnavailable: (
        503,
        "माफ़ करना, मेरे AI सिस्टम में कोई तकनीकी समस्या आ गई है। कृपया थोड़ी देर बाद "
        "फिर से प्रयास करें। (Sorry, the assistant is temporarily unavailable.)",
    ),
    ModelRateLimited: (
        429,
        "माफ़ करना, मेरे AI सिस्टम का **दैनिक कोटा समाप्त** हो गया है या दर सीमा (Rate Limit) "
        "पार हो गई है। कृपया थोड़ी देर बाद फिर से प्रयास करें। "
        "(The assistant is over its usage limit. Please try again later.)",
    ),
    UnknownTool: (
        500,
        "माफ़ करना, आपका अनुरोध पूरा नहीं हो सका। (Sorry, your request could not be completed.)",
    ),
    PersistenceError: (
        500,
        "डेटाबेस कनेक्शन में समस्या है। कृपया थोड़ी देर बाद फिर से प्रयास करें। "
        "(There is a problem with the database connection.)",
    ),
}
_GENERIC_APOLOGY = (
    "माफ़ करना, मेरे AI सिस्टम में कोई तकनीकी समस्या आ गई है। "
    "(Sorry, something went wrong. Please try again.)"
)


def _get_orchestrator(request: Request):
    """Retrieve the orchestrator built during the FastAPI lifespan."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return orchestrator


def _error_response(exc: Exception, request_id: str) -> JSONResponse:
    status_code, apology = _ERROR_RESPONSES.get(type(exc), (500, _GENERIC_APOLOGY))
    code = exc.code if isinstance(exc, SaathiError) else "INTERNAL_ERROR"
    if status_code >= 500:
        logger.exception("[%s] Chat turn failed (%s)", request_id, code)
    else:
        logger.info("[%s] Chat turn rejected (%s): %s", request_id, code, exc)
    body = ErrorResponse(ai_response=apology, error=code.replace("_", " ").lower(), code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def chat(request: ChatRequest, http_request: Request):
    """Send a message to the assistant and get the reply.

    Omit ``conversationId`` to start a new conversation; the response
    carries the id to send with every later message.

    ``handle_message`` blocks on the store and the model, so it runs in
    the default thread pool via ``asyncio.to_thread``.
    """
    orchestrator = _get_orchestrator(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await asyncio.to_thread(
            orchestrator.handle_message,
            request.message,
            conversation_id=request.conversation_id,
            user_id=request.user_id,
        )
    except Exception as exc:
        # Full detail goes to the log; the client gets an apology and a code
        return _error_response(exc, request_id)

    logger.info(
        "[%s] Turn complete: conversation=%s phase=%s",
        request_id, result.conversation_id, result.phase.value,
    )
    return ChatResponse(
        conversation_id=result.conversation_id,
        ai_response=result.reply,
        service_matched=result.service_matched,
        tool_used=result.tool_used,
    )


@router.get("/services", response_model=list[ServiceSummary])
async def list_services(http_request: Request):
    """Public catalog listing (name and description only)."""
    orchestrator = _get_orchestrator(http_request)
    try:
        services = await asyncio.to_thread(orchestrator.services.list_services)
    except PersistenceError as exc:
        logger.exception("Failed to load services")
        raise HTTPException(
            status_code=500,
            detail="Failed to load services. Check backend connectivity and seed data.",
        ) from exc
    return [ServiceSummary(name=s.name, description=s.description) for s in services]


@router.get("/admin/services", response_model=list[ServiceDetail])
async def list_services_admin(http_request: Request):
    """Full catalog listing, filed complaints included."""
    orchestrator = _get_orchestrator(http_request)
    try:
        services = await asyncio.to_thread(
            orchestrator.services.list_services, include_complaints=True,
        )
    except PersistenceError as exc:
        logger.exception("Failed to load services")
        raise HTTPException(
            status_code=500,
            detail="Failed to load services. Check backend connectivity and seed data.",
        ) from exc
    return [
        ServiceDetail(
            id=s.id,
            name=s.name,
            description=s.description,
            keywords=list(s.keywords),
            response=s.response,
            is_complaint=s.is_complaint,
        )
        for s in services
    ]


@router.get("/tools")
async def list_tools(http_request: Request):
    """Declarative schema of every tool the model may call."""
    return _get_orchestrator(http_request).registry.schemas()


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageOut])
async def conversation_messages(
    conversation_id: str,
    http_request: Request,
    limit: int = Query(20, ge=1, le=200),
):
    """The most recent ``limit`` messages of a conversation, oldest first."""
    orchestrator = _get_orchestrator(http_request)
    try:
        messages = await asyncio.to_thread(orchestrator.history, conversation_id, limit)
    except ConversationNotFound as exc:
        raise HTTPException(status_code=404, detail="Conversation not found") from exc
    except PersistenceError as exc:
        logger.exception("Failed to load history for %s", conversation_id)
        raise HTTPException(status_code=500, detail="Failed to load conversation") from exc
    return [
        MessageOut(role=m.role.value, content=m.content, timestamp=m.timestamp)
        for m in messages
    ]
