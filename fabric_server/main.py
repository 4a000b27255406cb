import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from fabric_server.config import Settings, mask_api_key
from fabric_server.context import AppContext
from fabric_server.errors import register_error_handlers
from fabric_server.routers.meetings import create_meetings_router
from fabric_server.services.discovery_report import DiscoveryReportGenerator
from fabric_server.services.email import EmailService
from fabric_server.services.file_storage import FileStorage
from fabric_server.services.llm import LLMProvider
from fabric_server.services.logging_setup import configure_logging
from fabric_server.services.meeting_store import MeetingStore
from fabric_server.services.summarization import SummarizationService

API_VERSION = "1.0.0"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_app(
    settings: Optional[Settings] = None,
    llm_provider: Optional[LLMProvider] = None,
    meeting_store: Optional[MeetingStore] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    ctx = AppContext(base_dir=settings.base_dir)
    ctx.ensure_dirs()

    configure_logging(ctx.logs_dir)
    logger = logging.getLogger("fabric.boot")
    logger.info("Boot: starting create_app base_dir=%s", ctx.base_dir)

    settings = settings.with_config_file(ctx.config_path)
    logger.info("Boot: data_dir=%s client_folders=%s", ctx.data_dir, settings.client_folders)
    logger.info(
        "Boot: ai_provider=%s gemini=%s anthropic=%s resend=%s",
        settings.ai_provider,
        mask_api_key(settings.gemini_api_key),
        mask_api_key(settings.anthropic_api_key),
        mask_api_key(settings.resend_api_key),
    )

    meeting_store = meeting_store if meeting_store is not None else MeetingStore()
    summarization_service = SummarizationService(ctx.prompts_dir, settings, provider=llm_provider)
    report_generator = DiscoveryReportGenerator(summarization_service)
    file_storage = FileStorage(ctx.data_dir, settings.client_folders)
    email_service = EmailService(settings)
    logger.info("Boot: services ready")

    app = FastAPI(title="Fabric Backend API", version=API_VERSION)
    app.state.ctx = ctx
    app.state.settings = settings
    app.state.meeting_store = meeting_store

    app.include_router(
        create_meetings_router(
            meeting_store,
            summarization_service,
            report_generator,
            file_storage,
            email_service,
            ctx,
        )
    )
    logger.info("Boot: meetings router mounted")

    request_logger = logging.getLogger("fabric.api.requests")

    class RequestLoggingMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            response = await call_next(request)
            request_logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
            return response

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info("Boot: CORS origin=%s", settings.cors_origin)

    register_error_handlers(app, logging.getLogger("fabric.api.errors"))

    @app.get("/")
    def root() -> dict:
        return {
            "name": "Fabric Backend API",
            "version": API_VERSION,
            "status": "running",
            "aiProvider": settings.ai_provider,
            "aiConfigured": settings.ai_configured(),
            "endpoints": {"health": "/api/health", "meetings": "/api/meetings"},
            "frontend": settings.cors_origin,
            "timestamp": _utc_timestamp(),
        }

    @app.get("/api/health")
    def health() -> dict:
        return {
            "status": "ok",
            "aiProvider": settings.ai_provider,
            "aiConfigured": settings.ai_configured(),
            "emailConfigured": email_service.validate_configuration().valid,
            "timestamp": _utc_timestamp(),
        }

    logger.info("Boot: create_app complete")
    return app
