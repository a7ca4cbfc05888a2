import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.application.container import ApplicationContainer
from storefront.core.errors import (
    InvalidState,
    NotFound,
    StorefrontError,
    Unauthorized,
)
from storefront.presentation import api, auth, integrations

logger = logging.getLogger(__name__)

ERROR_STATUSES = {
    Unauthorized: HTTPStatus.UNAUTHORIZED,
    NotFound: HTTPStatus.NOT_FOUND,
    InvalidState: HTTPStatus.BAD_REQUEST,
}


async def storefront_error_handler(request: Request, exc: StorefrontError):
    status_code = ERROR_STATUSES.get(type(exc), HTTPStatus.INTERNAL_SERVER_ERROR)
    if status_code == HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error(f"Unhandled error on {request.url.path}: {exc.message}")
    return JSONResponse(
        content={"success": False, "message": exc.message},
        status_code=status_code,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    if first["type"] == "json_invalid":
        return "Invalid JSON body"

    field = ".".join(
        str(part)
        for part in first["loc"]
        if part != "body" and not isinstance(part, int)
    )
    return f"Invalid {field}: {first['msg']}" if field else first["msg"]


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # The body is parsed before any dependency runs, so the integration key
    # is checked here as well
    if request.url.path.startswith(integrations.router.prefix):
        expected = request.app.container.config.integration.api_key()
        if not auth.api_key_matches(request.headers.get(auth.API_KEY_HEADER), expected):
            return await storefront_error_handler(
                request, Unauthorized(auth.INVALID_API_KEY)
            )

    message = _validation_message(exc)
    return JSONResponse(
        content={"success": False, "message": message},
        status_code=HTTPStatus.BAD_REQUEST,
    )


def build_api(container: ApplicationContainer) -> FastAPI:
    app = FastAPI(title="Storefront")
    app.include_router(api.router)
    app.include_router(integrations.router)
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    container.wire(modules=[api, auth, integrations])
    app.container = container
    return app
