"""Ledger error taxonomy.

Every error carries the HTTP status the API answers with, so routes can let
them propagate to the exception handler in ``app.py``.
"""


class LedgerError(Exception):
    status_code = 400
    code = "ledger_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class ValidationError(LedgerError):
    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, errors=None, **context):
        super().__init__(message, **context)
        self.errors = errors or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class AuthorizationError(LedgerError):
    status_code = 403
    code = "forbidden"


class NotFoundError(LedgerError):
    status_code = 404
    code = "not_found"


class BatchNotFoundError(NotFoundError):
    code = "batch_not_found"


class EventNotFoundError(NotFoundError):
    code = "event_not_found"


class InvalidTransitionError(LedgerError):
    status_code = 409
    code = "invalid_transition"


class ConflictError(LedgerError):
    status_code = 409
    code = "conflict"


class DuplicateEventError(ConflictError):
    code = "duplicate_event"


class ExternalServiceError(LedgerError):
    """Blockchain or content store failure.

    ``fatal`` errors abort the operation; non-fatal ones are reported to the
    caller as warnings and never raised out of ``append_event``.
    """

    status_code = 502
    code = "external_service_error"

    def __init__(self, message: str, service: str, fatal: bool = True, **context):
        super().__init__(message, **context)
        self.service = service
        self.fatal = fatal

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["service"] = self.service
        return body
