"""Domain errors raised by the chat core.

Each error carries the HTTP status it maps to so that request handlers stay
thin; ``staffhub.main`` registers a single handler that renders them.
"""
from fastapi import status


class ChatError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Bad request"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class PermissionDenied(ChatError):
    """Requester lacks the role or team relationship for the action."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to chat"


class NotAMember(ChatError):
    """Requester is not a member of the conversation."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not a member of this conversation"


class NotFound(ChatError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class InvalidInput(ChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class ServerError(ChatError):
    """Directory or storage failure. Logged, never retried by the core."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Server error"
