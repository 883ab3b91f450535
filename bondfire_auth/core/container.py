from dataclasses import dataclass

from ..application.services.auth_service import AuthService
from ..application.services.mfa_enrollment import MfaEnrollment
from .config import Settings
from ..domain.ports.persistence import CredentialStore
from ..domain.ports.services import Clock, NotificationSender
from ..services.password_hasher import PasswordHasher
from ..services.token_service import TokenService
from ..services.totp import TotpEngine


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    clock: Clock
    store: CredentialStore
    password_hasher: PasswordHasher
    totp_engine: TotpEngine
    token_service: TokenService
    mfa_enrollment: MfaEnrollment
    notifier: NotificationSender
    auth_service: AuthService
