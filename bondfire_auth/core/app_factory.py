from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.auth_service import AuthService
from ..application.services.mfa_enrollment import MfaEnrollment
from ..domain.ports.persistence import CredentialStore
from ..domain.ports.services import Clock, NotificationSender
from ..infrastructure.clock import SystemClock
from ..infrastructure.persistence.memory import InMemoryCredentialStore
from ..infrastructure.persistence.sqlite import SQLiteCredentialStore
from ..presentation.api.error_handlers import register_error_handlers
from ..presentation.api.routers import auth as auth_router
from ..services.email_service import EmailService
from ..services.password_hasher import PasswordHasher
from ..services.token_service import TokenService
from ..services.totp import TotpEngine

logger = logging.getLogger(__name__)


def build_container(
    settings: Settings,
    clock: Optional[Clock] = None,
    store: Optional[CredentialStore] = None,
    notifier: Optional[NotificationSender] = None,
) -> ApplicationContainer:
    clock = clock or SystemClock()
    if store is None:
        if settings.database_path:
            store = SQLiteCredentialStore(settings.database_path)
        else:
            logger.warning("DATABASE_PATH not set; users are kept in memory only.")
            store = InMemoryCredentialStore()
    if notifier is None:
        notifier = EmailService(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
            smtp_password=settings.smtp_password,
            from_email=settings.smtp_from_email,
            base_url=settings.frontend_base_url,
            reset_ttl_minutes=settings.reset_token_ttl_minutes,
        )
    password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    totp_engine = TotpEngine(clock, issuer=settings.mfa_issuer, window_steps=settings.totp_window)
    token_service = TokenService(
        secret_key=settings.jwt_secret,
        clock=clock,
        ttl=timedelta(minutes=settings.token_ttl_minutes),
    )
    mfa_enrollment = MfaEnrollment(totp_engine, reject_replay=settings.totp_reject_replay)
    auth_service = AuthService(
        store=store,
        hasher=password_hasher,
        tokens=token_service,
        mfa=mfa_enrollment,
        notifier=notifier,
        clock=clock,
        reset_ttl=timedelta(minutes=settings.reset_token_ttl_minutes),
    )
    return ApplicationContainer(
        settings=settings,
        clock=clock,
        store=store,
        password_hasher=password_hasher,
        totp_engine=totp_engine,
        token_service=token_service,
        mfa_enrollment=mfa_enrollment,
        notifier=notifier,
        auth_service=auth_service,
    )


def create_application(container: Optional[ApplicationContainer] = None) -> FastAPI:
    app = FastAPI(title="Bondfire Auth", lifespan=_create_lifespan(container))

    register_error_handlers(app)
    app.include_router(auth_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def _create_lifespan(prebuilt: Optional[ApplicationContainer]):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = prebuilt.settings if prebuilt else Settings()
        configure_logging(settings.log_level)
        container = prebuilt or build_container(settings)
        container.auth_service.ensure_seed_user(
            settings.seed_user_name, settings.seed_user_email, settings.seed_user_password
        )
        app.state.container = container  # type: ignore[attr-defined]
        try:
            yield
        finally:
            close = getattr(container.store, "close", None)
            if close is not None:
                close()

    return lifespan
