import logging

from starlette.requests import Request
from starlette.responses import JSONResponse

from sqlbroker.services.errors import (
    BrokerException,
    ConfigurationException,
    ConflictException,
    InternalException,
    NotFoundException,
    ValidationException,
)

ERROR_STATUS = {
    ValidationException: 400,
    NotFoundException: 404,
    ConflictException: 409,
    InternalException: 500,
    ConfigurationException: 500,
}

logger = logging.getLogger(__name__)


def _exception_handler(request: Request, exc: Exception):
    status = ERROR_STATUS.get(type(exc), 500)
    if status >= 500:
        logger.exception("Unhandled application error for path=%s: %s", request.url.path, exc)
    else:
        logger.warning("Request failed path=%s status=%s error=%s", request.url.path, status, exc)
    body = {"detail": str(exc)}
    if isinstance(exc, ValidationException):
        body = {"detail": exc.message, "field": exc.field}
    return JSONResponse(body, status_code=status)


def register_exception_handlers(app):
    app.exception_handler(BrokerException)(_exception_handler)
