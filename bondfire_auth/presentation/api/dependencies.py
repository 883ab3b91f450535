from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...core.dependencies import get_token_service
from ...domain.errors import TokenInvalid
from ...domain.models import TokenClaims
from ...services.token_service import TokenService

_bearer_scheme = HTTPBearer(auto_error=False)


def require_session(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> TokenClaims:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise TokenInvalid("Missing token.")
    return token_service.verify(credentials.credentials)
