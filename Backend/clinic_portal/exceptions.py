"""Domain errors raised by the portal logic.

Routers let these propagate; ``main.py`` turns them into the uniform
``{"success": false, "message": ..., "data": {}}`` envelope.
"""


class PortalError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str = None, data: dict = None):
        self.message = message or self.default_message
        self.data = data or {}
        super().__init__(self.message)


class NotFound(PortalError):
    status_code = 404
    default_message = "Not found"


class ValidationError(PortalError):
    status_code = 422
    default_message = "Invalid input"


class AuthFailed(PortalError):
    status_code = 401
    default_message = "Authentication failed"


class PermissionDenied(PortalError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class BackendError(PortalError):
    status_code = 500
    default_message = "Operation failed, please try again"
