"""Exceptions raised by the chat services."""

from __future__ import annotations


class ChatError(RuntimeError):
    """Base exception for chat and presence failures."""


class ChatValidationError(ChatError):
    """Raised when a request is missing required content."""


class MessageNotFoundError(ChatError):
    """Raised when a message id is not present in the chat log."""

    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message {message_id!r} not found")
        self.message_id = message_id


class MessageForbiddenError(ChatError):
    """Raised when the requester does not own the message."""

    def __init__(self, message_id: str, action: str) -> None:
        super().__init__(f"You can only {action} your own messages")
        self.message_id = message_id
        self.action = action


class ChatStoreError(ChatError):
    """Raised when the shared store cannot complete an operation."""


class MediaHostError(ChatError):
    """Raised when the media host rejects or fails a request."""


class MediaHostDisabledError(MediaHostError):
    """Raised when uploads are attempted without media host credentials."""
