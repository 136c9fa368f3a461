"""
Domain errors raised by the service layer.

Routers never build HTTP responses for these themselves; the handler
registered in ``netgains.common`` maps each class to its status code.
Best-effort side effects (push delivery, participant enrichment, reply
fan-out, image re-encoding) never raise, they log and continue.
"""


class NetGainsError(Exception):
    status_code = 500

    def __init__(self, detail: str = "Unexpected error"):
        super().__init__(detail)
        self.detail = detail


class AuthenticationError(NetGainsError):
    status_code = 401

    def __init__(self, detail: str = "User not authenticated"):
        super().__init__(detail)


class NotFoundError(NetGainsError):
    status_code = 404


class PermissionDeniedError(NetGainsError):
    status_code = 403


class ValidationError(NetGainsError):
    status_code = 400


class AttachmentOwnerNotFound(NetGainsError):
    """The post or reply an attachment is being committed to does not exist yet."""
    status_code = 409


class AttachmentUploadError(NetGainsError):
    status_code = 502


class AttachmentUploadTimeout(AttachmentUploadError):
    status_code = 504


class InvalidFlowTransition(NetGainsError):
    """An invitation flow was driven out of order."""
    status_code = 409
