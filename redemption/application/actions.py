"""
Action results: {"success": True, "data": ...} / {"success": False, "error": ...}

Domain errors become a failure result with a safe message; anything else
is a bug and propagates to the error-logging middleware.
"""
import logging
from typing import Any, Callable

from pydantic import BaseModel, ValidationError as PydanticValidationError

from redemption.application.entities import field_errors_from
from redemption.domain.errors import RedemptionError, ValidationError

logger = logging.getLogger(__name__)


def ok(data: Any = None) -> dict:
    return {"success": True, "data": data}


def error_result(exc: RedemptionError) -> dict:
    result = {"success": False, "error": exc.message}
    if isinstance(exc, ValidationError):
        result["field_errors"] = exc.field_errors
    return result


def safe_action(action: Callable[..., Any], *args, **kwargs) -> dict:
    try:
        return ok(action(*args, **kwargs))
    except RedemptionError as exc:
        logger.info("Action %s failed: %s", getattr(action, "__name__", action), exc.message)
        return error_result(exc)


def validated_action(schema: type[BaseModel], data: Any, action: Callable[[BaseModel], Any]) -> dict:
    """Validate data against schema, then run action(parsed) like safe_action."""
    try:
        parsed = schema.model_validate(data)
    except PydanticValidationError as exc:
        return error_result(ValidationError(field_errors_from(exc)))
    return safe_action(action, parsed)
