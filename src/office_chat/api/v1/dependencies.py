"""Shared API dependencies for authentication and chat services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from office_chat.core.security import decode_access_token
from office_chat.db.session import get_db
from office_chat.models import User
from office_chat.services.broadcast import BroadcastChannel
from office_chat.services.chat_log import ChatLogService
from office_chat.services.media import MediaHost
from office_chat.services.presence import PresenceService
from office_chat.services.store import ChatStore

# HTTP Bearer scheme for JWT authentication; a missing header is reported as 401
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _user_for_token(token: str | None, db: Session) -> User:
    """Resolve a bearer token to an active user.

    Raises:
        HTTPException: If the token is invalid or the user is unknown or inactive.
    """
    user_id = decode_access_token(token) if token else None
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the bearer token."""
    return _user_for_token(credentials.credentials if credentials else None, db)


def get_stream_user(
    db: SessionDep,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
    access_token: Annotated[str | None, Query()] = None,
) -> User:
    """Authenticate an event-stream request.

    Browsers cannot attach headers to an EventSource, so the token may also
    arrive as the ``access_token`` query parameter.
    """
    token = credentials.credentials if credentials is not None else access_token
    return _user_for_token(token, db)


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
StreamUserDep = Annotated[User, Depends(get_stream_user)]


def get_chat_store(request: Request) -> ChatStore:
    """Return the process-wide store handle installed at startup."""
    store: ChatStore | None = getattr(request.app.state, "chat_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat store is not available",
        )
    return store


def get_media_host(request: Request) -> MediaHost:
    """Return the media host client installed at startup."""
    media_host: MediaHost | None = getattr(request.app.state, "media_host", None)
    if media_host is None:
        media_host = MediaHost()
        request.app.state.media_host = media_host
    return media_host


ChatStoreDep = Annotated[ChatStore, Depends(get_chat_store)]
MediaHostDep = Annotated[MediaHost, Depends(get_media_host)]


def get_broadcast_channel(store: ChatStoreDep) -> BroadcastChannel:
    return BroadcastChannel(store)


BroadcastChannelDep = Annotated[BroadcastChannel, Depends(get_broadcast_channel)]


def get_chat_log(
    store: ChatStoreDep,
    channel: BroadcastChannelDep,
    media_host: MediaHostDep,
) -> ChatLogService:
    return ChatLogService(store, channel, media_host)


def get_presence(store: ChatStoreDep, channel: BroadcastChannelDep) -> PresenceService:
    return PresenceService(store, channel)


ChatLogDep = Annotated[ChatLogService, Depends(get_chat_log)]
PresenceDep = Annotated[PresenceService, Depends(get_presence)]
