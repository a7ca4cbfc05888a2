import hmac

import jwt
from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.application.container import ApplicationContainer
from storefront.core.errors import Unauthorized
from storefront.core.models import Caller

API_KEY_HEADER = "x-api-key"
INVALID_API_KEY = "Invalid or missing integration API key"

security = HTTPBearer(auto_error=False)


def api_key_matches(provided: str | None, expected: str | None) -> bool:
    return bool(provided and expected and hmac.compare_digest(provided, expected))


@inject
async def require_api_key(
    x_api_key: str | None = Header(default=None),
    api_key: str = Depends(Provide[ApplicationContainer.config.integration.api_key]),
) -> None:
    if not api_key_matches(x_api_key, api_key):
        raise Unauthorized(INVALID_API_KEY)


@inject
async def require_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    jwt_secret: str = Depends(
        Provide[ApplicationContainer.config.integration.jwt_secret]
    ),
    jwt_algorithm: str = Depends(
        Provide[ApplicationContainer.config.integration.jwt_algorithm]
    ),
) -> Caller:
    """Identity of the bearer token holder; the token must be signed with our secret."""
    if credentials is None or not jwt_secret:
        raise Unauthorized("Missing Authorization header")

    try:
        claims = jwt.decode(
            credentials.credentials, jwt_secret, algorithms=[jwt_algorithm]
        )
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid or expired token")

    user_id = claims.get("id") or claims.get("sub")
    if not user_id:
        raise Unauthorized("Invalid or expired token")

    return Caller(id=str(user_id), email=claims.get("email") or "")
