import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = {
    "password",
    "confirm_password",
    "current_password",
    "new_password",
    "confirm_new_password",
    "hashed_password",
}


class OnboardingStepError(Exception):
    """Raised when an onboarding step cannot be completed with the given data."""

    def __init__(self, step: int, message: str):
        super().__init__(message)
        self.step = step
        self.message = message


class SyncReplayError(Exception):
    """Raised when a queued offline request cannot be replayed."""


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    cleaned_errors = []

    for err in exc.errors():
        if "input" in err:
            input_val = err["input"]
            if isinstance(input_val, dict):
                input_copy = err["input"].copy()

                # Replace sensitive fields with ***
                for field in SENSITIVE_FIELDS:
                    if field in input_copy:
                        input_copy[field] = "***"

                err["input"] = input_copy
            elif err.get("loc") and err["loc"][-1] in SENSITIVE_FIELDS:
                # Field-level errors carry the bare value
                err["input"] = "***"

        # Remove the ctx field
        err.pop("ctx", None)

        cleaned_errors.append(err)

    return JSONResponse(
        status_code=422,
        content={"detail": cleaned_errors},
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Conflict"})
