from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class PayloadValidationError(ValueError):
    """Raised when a signed body is not valid JSON or does not match its schema."""

    def __init__(self, message: str, error_code: str, details: Any) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.details = details


def parse_signed_body(raw_body: bytes, model: type[ModelT]) -> ModelT:
    """Parse raw request bytes into ``model``.

    Runs only after the signature over the same bytes has been verified.
    """
    try:
        decoded = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PayloadValidationError(
            "Invalid JSON", "invalid_json", "Request body must be valid JSON"
        ) from exc

    try:
        return model.model_validate(decoded)
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        logger.info(
            "Signed payload failed validation",
            extra={"model": model.__name__, "error_count": len(errors)},
        )
        raise PayloadValidationError("Validation failed", "validation_failed", errors) from exc
