"""Chat message, presence and broadcast envelope schemas.

Everything here travels as camelCase JSON: stored list entries, HTTP bodies
and pub/sub payloads share one wire shape.
"""
from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    TypeAdapter,
    field_validator,
)
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model reading and writing camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, object]:
        """Return the JSON-ready camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)

    def to_wire_json(self) -> str:
        """Return the camelCase JSON string."""
        return self.model_dump_json(by_alias=True)


class Attachment(CamelModel):
    """Reference to a file held by the media host."""

    id: str
    filename: str
    url: str
    type: str = Field(..., description="'image' or 'document'")
    size: int = Field(default=0, ge=0)
    public_id: str | None = Field(default=None, description="Media host reference")


class ChatMessage(CamelModel):
    """A chat log entry with a snapshot of its sender."""

    id: str
    user_id: str | None = None
    name: str
    role: str
    avatar: str | None = None
    message: str = ""
    sent_at: str
    attachments: list[Attachment] = Field(default_factory=list)
    edited: bool = False

    @field_validator("message", mode="before")
    @classmethod
    def _null_message(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("attachments", mode="before")
    @classmethod
    def _null_attachments(cls, value: object) -> object:
        return [] if value is None else value


class ChatMessageCreate(CamelModel):
    """Body of a send-message request; presence checks happen in the service."""

    id: str | None = None
    name: str | None = None
    role: str | None = None
    avatar: str | None = None
    message: str | None = None
    attachments: list[Attachment] | None = None


class ChatMessageEdit(CamelModel):
    """Body of an edit request."""

    message_id: str | None = None
    new_text: str | None = None


class ChatMessageDelete(CamelModel):
    """Body of a delete request."""

    message_id: str | None = None


class TypingUpdate(CamelModel):
    """Body of a typing indicator request."""

    is_typing: StrictBool


class StatusUpdate(CamelModel):
    """Body of a presence request."""

    is_online: StrictBool


class UserPresence(CamelModel):
    """A directory user joined with their presence state."""

    id: str
    name: str
    role: str
    avatar: str
    is_online: bool
    last_seen: str | None = None


class SendMessageResponse(CamelModel):
    """Result of sending a chat message."""

    success: bool = True
    message: ChatMessage
    notified: int = 0


class UploadResponse(CamelModel):
    """Result of an attachment upload."""

    success: bool = True
    attachments: list[Attachment]


# --- Broadcast envelopes ---------------------------------------------------------


class MessageEnvelope(ChatMessage):
    """A new chat message."""

    type: Literal["message"] = "message"


class MessageEditEnvelope(ChatMessage):
    """A chat message after an edit."""

    type: Literal["message_edit"] = "message_edit"


class MessageDeleteEnvelope(CamelModel):
    type: Literal["message_delete"] = "message_delete"
    id: str
    deleted_by: str


class UserStatusEnvelope(CamelModel):
    type: Literal["user_status"] = "user_status"
    user_id: str
    name: str
    role: str
    is_online: bool
    sent_at: str


class TypingIndicatorEnvelope(CamelModel):
    type: Literal["typing_indicator"] = "typing_indicator"
    user_id: str
    name: str
    is_typing: bool


class HeartbeatEnvelope(CamelModel):
    type: Literal["heartbeat"] = "heartbeat"


BroadcastEnvelope = Annotated[
    Union[
        MessageEnvelope,
        MessageEditEnvelope,
        MessageDeleteEnvelope,
        UserStatusEnvelope,
        TypingIndicatorEnvelope,
        HeartbeatEnvelope,
    ],
    Field(discriminator="type"),
]

_envelope_adapter: TypeAdapter[BroadcastEnvelope] = TypeAdapter(BroadcastEnvelope)


def parse_envelope(raw: str | bytes) -> BroadcastEnvelope:
    """Parse a published JSON payload into its envelope variant.

    Raises:
        pydantic.ValidationError: If the payload carries an unknown type or bad fields.
    """
    return _envelope_adapter.validate_json(raw)
