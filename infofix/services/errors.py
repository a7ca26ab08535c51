"""Errors raised by the application services."""


class InfofixError(Exception):
    """Base class for service-level failures."""
    code = "error"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFound(InfofixError):
    code = "not_found"


class PermissionDenied(InfofixError):
    code = "permission_denied"


class WorkflowError(InfofixError):
    """A ticket or task change broke a workflow rule."""
    code = "workflow"
