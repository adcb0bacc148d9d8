"""
Document Approval API
Writers submit documents, managers approve or reject them from the web
API or from signed email links.
"""

import logging
from datetime import datetime, UTC
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import Engine

from .config import Settings, settings as default_settings
from .errors import WorkflowError
from .repository import SubmissionRepository, build_engine
from .routers import auth, email_actions, submissions
from .services.auth import AuthService
from .services.email_tokens import EmailActionSigner
from .services.events import AuditLogObserver, NotificationObserver, SubmissionSubject
from .services.notifier import LogNotifier, Notifier, SmtpNotifier
from .util.clock import utc_now
from .workflow import WorkflowEngine

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = utc_now,
    id_factory: Optional[Callable[[], str]] = None,
) -> FastAPI:
    """
    Build the application and wire its services.
    Tests pass their own engine, notifier, clock and id factory.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Document Approval API",
        version=VERSION,
        description="Submission workflow with web and email approval",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    engine = engine or build_engine(settings.database_url)
    repository = SubmissionRepository(engine)
    repository.create_schema()
    logger.info("Using submission store: %s", engine.url.render_as_string(hide_password=True))

    engine_kwargs = {"clock": clock}
    if id_factory is not None:
        engine_kwargs["id_factory"] = id_factory
    workflow = WorkflowEngine(repository, **engine_kwargs)

    signer = EmailActionSigner(
        settings.email_secret, settings.email_token_max_age_seconds, clock=clock
    )
    notifier = notifier or SmtpNotifier.from_settings(settings) or LogNotifier()

    events = SubmissionSubject()
    events.attach(AuditLogObserver())
    events.attach(
        NotificationObserver(
            notifier,
            signer,
            settings.base_url,
            manager_email=settings.manager_email,
            fallback_email=settings.from_email,
        )
    )

    app.state.settings = settings
    app.state.repository = repository
    app.state.workflow = workflow
    app.state.auth = AuthService.from_settings(settings)
    app.state.signer = signer
    app.state.events = events

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    app.include_router(auth.router, prefix="/api", tags=["auth"])
    app.include_router(submissions.router, prefix="/api", tags=["submissions"])
    app.include_router(email_actions.router, prefix="/api", tags=["email"])

    @app.get("/api/health", tags=["health"])
    async def health_check():
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": VERSION,
        }

    @app.exception_handler(WorkflowError)
    async def workflow_exception_handler(request: Request, exc: WorkflowError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": [],
                }
            },
        )

    @app.exception_handler(Exception)
    async def default_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL",
                    "message": "Unhandled error",
                    "details": [{"path": request.url.path, "msg": str(exc)}],
                }
            },
        )

    return app


configure_logging(default_settings.log_level)
app = create_app()
