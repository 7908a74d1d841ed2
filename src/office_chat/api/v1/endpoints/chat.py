# src/office_chat/api/v1/endpoints/chat.py
"""Team chat, presence and event-stream endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any

import anyio
from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.types import Receive, Scope, Send

from office_chat.core.settings import settings
from office_chat.schemas.chat import (
    Attachment,
    ChatMessage,
    ChatMessageCreate,
    ChatMessageDelete,
    ChatMessageEdit,
    SendMessageResponse,
    StatusUpdate,
    TypingIndicatorEnvelope,
    TypingUpdate,
    UploadResponse,
    UserPresence,
)
from office_chat.services.chat_log import Requester
from office_chat.services.errors import (
    ChatError,
    ChatValidationError,
    MediaHostDisabledError,
    MessageForbiddenError,
    MessageNotFoundError,
)
from office_chat.services.notifications import NotificationService, active_directory
from office_chat.services.stream import ChatStream

from ..dependencies import (
    BroadcastChannelDep,
    ChatLogDep,
    CurrentUserDep,
    MediaHostDep,
    PresenceDep,
    SessionDep,
    StreamUserDep,
)

router = APIRouter(prefix="/chat", tags=["chat"])

logger = logging.getLogger(__name__)


def _http_error(exc: ChatError, fallback: str) -> HTTPException:
    """Translate a service error; unexpected failures get a generic message."""
    if isinstance(exc, ChatValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, MessageNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    if isinstance(exc, MessageForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, MediaHostDisabledError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="File uploads are not configured",
        )
    logger.exception("%s: %s", fallback, exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=fallback)


class ChatStreamResponse(StreamingResponse):
    """Event-stream response that releases its subscription however it ends.

    The frame generator only cleans up once it has been iterated, so a client
    that goes away before the first byte is covered here.
    """

    def __init__(self, stream: ChatStream, **kwargs: Any) -> None:
        super().__init__(stream.frames(), media_type="text/event-stream", **kwargs)
        self.stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                await self.stream.close()


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SendMessageResponse)
async def send_message(
    payload: ChatMessageCreate,
    current_user: CurrentUserDep,
    chat_log: ChatLogDep,
    db: SessionDep,
) -> SendMessageResponse:
    """Append a message to the team chat and notify everyone else."""
    try:
        message = await chat_log.append(payload, sender_id=current_user.id)
    except ChatError as exc:
        raise _http_error(exc, "Something went wrong") from exc

    notified = 0
    if settings.chat_notifications_enabled:
        try:
            batch = NotificationService(db).notify_chat_message(current_user, message.message)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Chat notification fan-out failed for message %s", message.id)
        else:
            notified = batch.sent

    return SendMessageResponse(message=message, notified=notified)


@router.get("/", response_model=list[ChatMessage])
async def list_messages(current_user: CurrentUserDep, chat_log: ChatLogDep) -> list[ChatMessage]:
    """Return the chat history, newest first."""
    try:
        return await chat_log.list_messages()
    except ChatError as exc:
        raise _http_error(exc, "Failed to fetch messages") from exc


@router.post("/edit")
async def edit_message(
    payload: ChatMessageEdit,
    current_user: CurrentUserDep,
    chat_log: ChatLogDep,
) -> dict[str, bool]:
    """Replace the text of one of the caller's messages."""
    if not payload.message_id or not payload.new_text:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message ID and new text are required",
        )
    requester = Requester(user_id=current_user.id, name=current_user.name)
    try:
        await chat_log.edit(payload.message_id, payload.new_text, requester)
    except ChatError as exc:
        raise _http_error(exc, "Failed to edit message") from exc
    return {"success": True}


@router.post("/delete")
async def delete_message(
    payload: ChatMessageDelete,
    current_user: CurrentUserDep,
    chat_log: ChatLogDep,
) -> dict[str, bool]:
    """Delete one of the caller's messages along with its attachments."""
    if not payload.message_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message ID is required",
        )
    requester = Requester(user_id=current_user.id, name=current_user.name)
    try:
        await chat_log.delete(payload.message_id, requester)
    except ChatError as exc:
        raise _http_error(exc, "Failed to delete message") from exc
    return {"success": True}


@router.post("/typing")
async def set_typing(
    payload: TypingUpdate,
    current_user: CurrentUserDep,
    channel: BroadcastChannelDep,
) -> dict[str, bool]:
    """Broadcast that the caller started or stopped typing."""
    envelope = TypingIndicatorEnvelope(
        user_id=current_user.id,
        name=current_user.name,
        is_typing=payload.is_typing,
    )
    try:
        await channel.publish(envelope)
    except ChatError as exc:
        raise _http_error(exc, "Failed to update typing status") from exc
    return {"success": True}


@router.post("/status")
async def set_status(
    payload: StatusUpdate,
    current_user: CurrentUserDep,
    presence: PresenceDep,
) -> dict[str, bool]:
    """Mark the caller online or offline."""
    try:
        if payload.is_online:
            await presence.set_online(current_user.id, current_user.name, current_user.role_name)
        else:
            await presence.set_offline(current_user.id, current_user.name, current_user.role_name)
    except ChatError as exc:
        raise _http_error(exc, "Failed to update status") from exc
    return {"success": True}


@router.get("/users", response_model=list[UserPresence])
async def list_users(
    current_user: CurrentUserDep,
    presence: PresenceDep,
    db: SessionDep,
) -> list[UserPresence]:
    """Return every active user with their online state."""
    try:
        return await presence.list_users(active_directory(db))
    except ChatError as exc:
        raise _http_error(exc, "Failed to fetch users") from exc


@router.get("/stream")
async def stream_events(
    request: Request,
    current_user: StreamUserDep,
    channel: BroadcastChannelDep,
) -> ChatStreamResponse:
    """Relay every chat event to the caller as server-sent events."""
    stream = ChatStream(channel, is_disconnected=request.is_disconnected)
    try:
        await stream.open()
    except ChatError as exc:
        raise _http_error(exc, "Failed to open chat stream") from exc
    logger.info("Chat stream opened for user %s", current_user.id)

    return ChatStreamResponse(
        stream,
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_attachments(
    current_user: CurrentUserDep,
    media_host: MediaHostDep,
    files: Annotated[list[UploadFile] | None, File()] = None,
) -> UploadResponse:
    """Upload chat attachments to the media host."""
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files provided")

    async def _upload(file: UploadFile) -> Attachment:
        content = await file.read()
        return await media_host.upload(file.filename or "file", content, file.content_type)

    results = await asyncio.gather(*(_upload(file) for file in files), return_exceptions=True)
    uploaded = [result for result in results if isinstance(result, Attachment)]
    failures = [result for result in results if isinstance(result, BaseException)]
    if not failures:
        return UploadResponse(attachments=uploaded)

    # One bad file fails the request; drop what already reached the host.
    for attachment in uploaded:
        if not attachment.public_id:
            continue
        resource_type = "image" if attachment.type == "image" else "raw"
        try:
            await media_host.destroy(attachment.public_id, resource_type=resource_type)
        except ChatError as cleanup_exc:
            logger.warning(
                "Failed to remove orphaned upload %s: %s", attachment.public_id, cleanup_exc
            )

    exc = failures[0]
    if isinstance(exc, ChatError):
        raise _http_error(exc, "Failed to upload files") from exc
    raise exc
