"""
Error taxonomy shared by the service, gateway and HTTP layers.

Each error carries a short message that is safe to show to the client.
`main.py` maps them to status codes: validation -> 400, auth -> 401,
storage -> 500. Storage causes are chained (`raise ... from exc`) and
logged server-side only.
"""


class GlucoseDiaryError(Exception):
    """Base class for all errors raised by this backend."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GlucoseDiaryError):
    """Bad or missing input. Raised before any store access."""

    status_code = 400


class AuthError(GlucoseDiaryError):
    """No valid session for the caller."""

    status_code = 401


class StorageError(GlucoseDiaryError):
    """Store unreachable or a statement failed."""

    status_code = 500
