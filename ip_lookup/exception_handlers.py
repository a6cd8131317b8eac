from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ip_lookup.errors import CacheError
from ip_lookup.logger import logger

# Query fields with their own error code and a stable client-facing message.
_FIELD_ERRORS: dict[str, tuple[str, str]] = {
    "ip": ("invalid_ip", "The supplied IP address is not a valid IPv4 or IPv6 address."),
    "provider": ("invalid_request", "Unknown provider."),
}


def _get_provider_from_request(request: Request) -> str | None:
    """The raw `provider` query parameter, if any; None for endpoints without one."""
    return request.query_params.get("provider")


def _build_validation_error_payload(exc: ValidationError) -> dict:
    """Reduce validation errors to `code` and `message`; field-level details are not exposed."""
    for error in exc.errors():
        loc = error.get("loc", ())
        # Request-level ("query", "ip") and model-level ("ip") locations both end in the field name.
        if loc and loc[-1] in _FIELD_ERRORS:
            code, message = _FIELD_ERRORS[loc[-1]]
            return {"code": code, "message": message}

    return {"code": "invalid_request", "message": "Invalid request parameters"}


async def pydantic_validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors raised while building the query model."""
    provider = _get_provider_from_request(request)
    logger.info(
        "Pydantic validation error during request handling "
        f"path={request.url.path} method={request.method} provider={provider} errors={exc.errors()}"
    )
    payload = _build_validation_error_payload(exc)
    payload["provider"] = provider
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=payload)


async def cache_exception_handler(request: Request, exc: CacheError) -> JSONResponse:
    """Cache maintenance endpoints surface persistence failures; lookups never do."""
    logger.error(f"Cache operation failed path={request.url.path} method={request.method} error={exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"code": "cache_error", "message": str(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors to return a structured 500 response."""
    provider = _get_provider_from_request(request)
    logger.exception(
        "Unhandled exception while processing request: "
        f"{repr(exc)} path={request.url.path} method={request.method} provider={provider}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "internal_error",
            "message": "An unexpected error occurred while processing the request.",
            "provider": provider,
        },
    )
