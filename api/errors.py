"""Application-wide error responses.

- HTTPException -> ``{"error": detail}`` (dict details are passed through)
- request validation -> 400 ``{"errors": [{"field", "message"}]}``
- anything else -> 500 ``{"error": "Internal server error"}``
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = exc.detail if isinstance(exc.detail, dict) else {'error': exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, 'headers', None))

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get('loc', ())]
        field = '.'.join(loc[1:]) if len(loc) > 1 else '.'.join(loc)
        errors.append({'field': field, 'message': error.get('msg', 'Invalid value')})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'errors': errors})

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'error': 'Internal server error'}
    )

def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
