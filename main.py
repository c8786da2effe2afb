import json
import logging
import os
import subprocess
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ai.service import OpenAIGenerationService
from core.clock import SystemClock
from core.config import load_settings
from core.membership import MembershipState, MembershipStore
from core.models import COMPETENCE_DOMAINS, MAX_GRADE, MIN_GRADE, GenerationRequest, Subject
from core.orchestrator import GenerationOutcome, GenerationService, OutcomeKind, process
from core.policy import can_access, needs_subscription_modal, needs_trial_modal
from core.security import require_admin_key, require_api_key
from core.storage import JsonFileStorage

# -----------------------------
# Load env
# -----------------------------
load_dotenv()
settings = load_settings()

# -----------------------------
# Logging (structured)
# -----------------------------
LOG_LEVEL = settings.log_level
logger = logging.getLogger("nls-api")
logger.setLevel(LOG_LEVEL)
handler = logging.StreamHandler()
handler.setLevel(LOG_LEVEL)
logger.propagate = False


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "ts": datetime.now(timezone.utc).isoformat(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in ("request_id", "path", "status", "latency_ms", "membership_status", "days_remaining", "outcome",
                  "contact", "reference"):
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


handler.setFormatter(JsonFormatter())
logger.handlers = [handler]


def _log(level: str, message: str, **extra: Any) -> None:
    """Small wrapper to keep structured logging consistent."""
    log_method = getattr(logger, level)
    log_method(message, extra=extra)

# -----------------------------
# App
# -----------------------------
app = FastAPI(
    title="NLS Lesson Plan API",
    description="Tích hợp năng lực số vào giáo án bằng AI, có dùng thử và gói Premium",
    version="1.0.0",
)

# -----------------------------
# CORS
# -----------------------------
origins = settings.allowed_origins
allowed = [o.strip() for o in origins.split(",")] if origins != "*" else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],  # Authorization + X-Admin-Key
)

# -----------------------------
# Middleware: request_id + logging
# -----------------------------
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id

    start = time.time()
    try:
        response = await call_next(request)
        latency_ms = int((time.time() - start) * 1000)

        extra = {
            "request_id": request_id,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": latency_ms,
        }
        _log("info", "request", **extra)

        response.headers["X-Request-Id"] = request_id
        return response

    except Exception:
        latency_ms = int((time.time() - start) * 1000)
        extra = {
            "request_id": request_id,
            "path": request.url.path,
            "status": 500,
            "latency_ms": latency_ms,
        }
        logger.error("unhandled_exception", exc_info=True, extra=extra)
        return JSONResponse(
            status_code=500,
            content={"detail": "Lỗi máy chủ nội bộ.", "request_id": request_id},
        )

# -----------------------------
# Exception handler: HTTPException
# -----------------------------
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = getattr(request.state, "request_id", None)
    extra = {
        "request_id": request_id,
        "path": request.url.path,
        "status": exc.status_code,
        "latency_ms": None,
    }
    _log("warning", "http_exception", **extra)
    payload = {"detail": exc.detail}
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)

# -----------------------------
# Dependencies
# -----------------------------
_store = MembershipStore(
    JsonFileStorage(settings.membership_path),
    SystemClock(),
    trial_days=settings.trial_days,
)
_generator = OpenAIGenerationService(settings)

# one generation at a time; set and cleared only on the event loop
_in_flight = False


def get_store() -> MembershipStore:
    return _store


def get_generator() -> GenerationService:
    return _generator


def get_auth(request: Request, authorization: Optional[str] = Header(default=None)):
    return require_api_key(authorization=authorization, request_path=request.url.path)

# -----------------------------
# Models
# -----------------------------
class MembershipResponse(BaseModel):
    status: str
    days_remaining: int
    expires_today: bool
    trial_started_at: Optional[datetime] = None
    premium_expires_at: Optional[datetime] = None
    can_access: bool
    needs_trial_modal: bool
    needs_subscription_modal: bool


class ActivatePremiumRequest(BaseModel):
    duration_days: int = Field(default=settings.premium_days, ge=1, le=3650)


class PaymentConfirmationRequest(BaseModel):
    contact: str = Field(..., min_length=1, max_length=200, description="Email, Zalo hoặc số điện thoại")
    reference: Optional[str] = Field(None, max_length=200, description="Mã/nội dung chuyển khoản")


class GenerateResponse(BaseModel):
    result: str

# -----------------------------
# Helpers
# -----------------------------
def _membership_view(m: MembershipState) -> MembershipResponse:
    return MembershipResponse(
        status=m.status.value,
        days_remaining=m.days_remaining,
        expires_today=m.expires_today,
        trial_started_at=m.trial_started_at,
        premium_expires_at=m.premium_expires_at,
        can_access=can_access(m),
        needs_trial_modal=needs_trial_modal(m),
        needs_subscription_modal=needs_subscription_modal(m),
    )


def _outcome_to_http(outcome: GenerationOutcome) -> HTTPException:
    if outcome.kind == OutcomeKind.VALIDATION_ERROR:
        return HTTPException(status_code=400, detail=outcome.message)
    if outcome.kind == OutcomeKind.ACCESS_DENIED:
        gate = outcome.gate.value if outcome.gate else None
        return HTTPException(status_code=403, detail={"detail": outcome.message, "gate": gate})
    return HTTPException(
        status_code=502,
        detail={"detail": outcome.message, "kind": outcome.kind.value},
    )


def _git_commit_hash() -> Optional[str]:
    try:
        return (
            subprocess.check_output(["git", "rev-parse", "HEAD"], cwd=Path(__file__).parent)
            .decode()
            .strip()
        )
    except Exception:
        return None

# -----------------------------
# Routes
# -----------------------------
@app.get("/")
async def root():
    """Lightweight root endpoint for uptime checks."""
    return {
        "ok": True,
        "service": "nls-lesson-plan",
        "version": app.version,
        "commit": _git_commit_hash(),
        "env": {"openai": bool(os.getenv("OPENAI_API_KEY")), "log_level": LOG_LEVEL},
    }


@app.get("/health")
async def health_check():
    return {"ok": True}


@app.get("/v1/catalog")
async def catalog():
    """Subjects, grades and competence domains the form can offer."""
    return {
        "subjects": [{"key": s.name, "label": s.value} for s in Subject],
        "grades": list(range(MIN_GRADE, MAX_GRADE + 1)),
        "competence_domains": COMPETENCE_DOMAINS,
    }


@app.get("/v1/membership", response_model=MembershipResponse)
async def membership_status(auth=Depends(get_auth), store: MembershipStore = Depends(get_store)):
    return _membership_view(store.current_status())


@app.post("/v1/membership/trial", response_model=MembershipResponse)
async def start_trial(auth=Depends(get_auth), store: MembershipStore = Depends(get_store)):
    return _membership_view(store.start_trial())


@app.post("/v1/membership/premium", response_model=MembershipResponse)
async def activate_premium(
    body: ActivatePremiumRequest,
    x_admin_key: Optional[str] = Header(default=None),
    store: MembershipStore = Depends(get_store),
):
    require_admin_key(x_admin_key)
    return _membership_view(store.activate_premium(body.duration_days))


@app.post("/v1/membership/payment-confirmation")
async def payment_confirmation(
    body: PaymentConfirmationRequest,
    request: Request,
    auth=Depends(get_auth),
    store: MembershipStore = Depends(get_store),
):
    """Record that the user says they paid. Activation stays a manual admin step."""
    m = store.current_status()
    logger.info(
        "payment_confirmation_received",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "membership_status": m.status.value,
            "days_remaining": m.days_remaining,
            "contact": body.contact,
            "reference": body.reference,
        },
    )
    return {"ok": True, "pending_review": True, "status": m.status.value}


@app.post("/v1/generate", response_model=GenerateResponse)
async def generate(
    body: GenerationRequest,
    request: Request,
    auth=Depends(get_auth),
    store: MembershipStore = Depends(get_store),
    generator: GenerationService = Depends(get_generator),
):
    global _in_flight
    if _in_flight:
        raise HTTPException(status_code=409, detail="Đang xử lý một yêu cầu khác, vui lòng đợi.")

    _in_flight = True
    try:
        outcome = await process(body, store, generator)
    finally:
        _in_flight = False

    if not outcome.ok:
        extra = {
            "request_id": getattr(request.state, "request_id", None),
            "path": request.url.path,
            "outcome": outcome.kind.value,
        }
        _log("warning", "generate_failed", **extra)
        raise _outcome_to_http(outcome)

    return GenerateResponse(result=outcome.text)
