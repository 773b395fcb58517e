"""
Pre-Authorization Claim Service - FastAPI Backend
Main application entry point with CORS, routing and OTP service wiring
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import uvicorn
from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables before settings are read
load_dotenv()

from config import Settings, load_settings
from routes.otp_routes import router as otp_router
from routes.preauth_routes import router as preauth_router
from services.email_service import EmailService
from services.otp_service import OTPService
from services.otp_store import OTPStore
from services.preauth_service import PreAuthService
from services.webhook_service import WebhookService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            messages.append(msg[len("Value error, "):])
        else:
            field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
            messages.append(f"{field}: {msg}" if field else msg)
    return "; ".join(messages) or "Invalid request"


def _start_sweeper(app: FastAPI) -> None:
    minutes = app.state.settings.otp_sweep_interval_minutes
    if minutes <= 0:
        return
    sched = BackgroundScheduler(timezone="UTC")
    sched.add_job(app.state.otp_service.purge_expired, "interval", minutes=minutes,
                  id="purge_expired_otps", replace_existing=True)
    sched.start()
    app.state.scheduler = sched
    logger.info("OTP sweeper running every %d minute(s)", minutes)


def _stop_sweeper(app: FastAPI) -> None:
    sched = getattr(app.state, "scheduler", None)
    if sched:
        sched.shutdown(wait=False)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _start_sweeper(app)
    yield
    _stop_sweeper(app)


def create_app(settings: Optional[Settings] = None,
               store: Optional[OTPStore] = None,
               email_service: Optional[EmailService] = None,
               webhook_service: Optional[WebhookService] = None) -> FastAPI:
    settings = settings or load_settings()
    store = store or OTPStore()
    email_service = email_service or EmailService(settings)
    webhook_service = webhook_service or WebhookService(settings)
    otp_service = OTPService(settings, store, email_service)

    app = FastAPI(
        title="Pre-Authorization Claim Service",
        description="Pre-authorization claim submission with email OTP verification",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.otp_service = otp_service
    app.state.preauth_service = PreAuthService(otp_service, email_service, webhook_service)

    # CORS middleware for frontend integration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(otp_router, prefix="/api", tags=["OTP"])
    app.include_router(preauth_router, prefix="/api", tags=["Pre-Authorization"])

    @app.get("/")
    async def root():
        """Root endpoint with basic API information"""
        return {
            "message": "Pre-Authorization Claim Service API",
            "version": "1.0.0",
            "status": "active",
            "endpoints": {
                "health": "/health",
                "send_otp": "/api/send-otp",
                "verify_otp": "/api/verify-otp",
                "check_otp_status": "/api/check-otp-status",
                "submit_preauth": "/api/submit-preauth",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request, exc):
        message = exc.detail if exc.status_code != 404 else "Endpoint not found"
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": message}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request, exc):
        """Missing or malformed fields are a 400, not FastAPI's default 422"""
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": _validation_message(exc)}
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request, exc):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error. Please try again later."}
        )

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=app.state.settings.port,
        reload=False,
        log_level="info"
    )
