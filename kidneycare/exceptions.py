"""Error kinds surfaced by the API.

Every class knows its HTTP status and the JSON body the client sees; the
handlers registered in ``main.py`` only render them.
"""
from typing import Any, Dict, List, Optional


class ClinicError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def body(self) -> Dict[str, Any]:
        return {"error": self.message}


class Unauthenticated(ClinicError):
    """Missing, malformed or expired credential, or the identity is gone.

    The body is identical for every cause.
    """
    status_code = 401
    default_message = "Unauthorized"

    def __init__(self, reason: str = "unauthenticated"):
        # reason is for server logs only, never rendered
        self.reason = reason
        super().__init__(self.default_message)

    def body(self) -> Dict[str, Any]:
        return {"message": self.default_message}


class Forbidden(ClinicError):
    status_code = 403
    default_message = "Forbidden"


class InvalidCredentials(ClinicError):
    status_code = 400
    default_message = "Invalid username or password"


class RoleMismatch(ClinicError):
    status_code = 403
    default_message = "Forbidden: Incorrect role"


class ValidationFailed(ClinicError):
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, fields: Optional[List[Dict[str, str]]] = None, message: Optional[str] = None):
        self.fields = fields or []
        super().__init__(message)

    def body(self) -> Dict[str, Any]:
        return {"error": self.message, "fields": self.fields}


class Conflict(ClinicError):
    status_code = 400
    default_message = "Conflict"


class NotFound(ClinicError):
    status_code = 404
    default_message = "Not found"

    def __init__(self, entity: str = "Resource"):
        self.entity = entity
        super().__init__(f"{entity} not found")


class Internal(ClinicError):
    status_code = 500
    default_message = "Internal Server Error"
