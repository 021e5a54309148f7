"""
Core data models for the LINE dispatch layer.
These are the universal types shared across all modules.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    LOCATION = "location"
    STICKER = "sticker"
    IMAGEMAP = "imagemap"
    BUTTON_TEMPLATE = "button_template"
    CONFIRM_TEMPLATE = "confirm_template"
    CAROUSEL_TEMPLATE = "carousel_template"
    IMAGE_CAROUSEL_TEMPLATE = "image_carousel_template"


class DeliveryMode(str, Enum):
    REPLY = "reply"
    PUSH = "push"
    SEND = "send"
    SEND_WITH_DELAY = "send_with_delay"


class ReplyState(str, Enum):
    UNREPLIED = "unreplied"
    REPLIED = "replied"


class EventType(str, Enum):
    MESSAGE = "message"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    JOIN = "join"
    LEAVE = "leave"
    POSTBACK = "postback"
    BEACON = "beacon"


# ──────────────────────────────────────────────────────────────
#  Session — the conversation owner
# ──────────────────────────────────────────────────────────────

class LineUser(BaseModel):
    """A LINE user reachable by push messages."""
    id: str
    display_name: str = ""


class LineSession(BaseModel):
    """Conversation state for one user. `user.id` is the push target."""
    user: LineUser
    state: dict[str, Any] = {}
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def user_id(self) -> str:
        return self.user.id


# ──────────────────────────────────────────────────────────────
#  Inbound event
# ──────────────────────────────────────────────────────────────

class LineEventSource(BaseModel):
    type: str = "user"                        # user | group | room
    user_id: str = ""
    group_id: str = ""
    room_id: str = ""


class LineEvent(BaseModel):
    """
    A single webhook event. Holds the one-shot reply token consumed by
    reply-family operations.
    """
    type: str
    reply_token: Optional[str] = None
    timestamp: int = 0                        # epoch milliseconds
    source: LineEventSource = Field(default_factory=LineEventSource)
    message: Optional[dict[str, Any]] = None
    postback: Optional[dict[str, Any]] = None
    raw: dict[str, Any] = {}

    @classmethod
    def from_raw(cls, payload: dict[str, Any]) -> LineEvent:
        """Build an event from the camelCase webhook payload."""
        source = payload.get("source") or {}
        return cls(
            type=payload.get("type", ""),
            reply_token=payload.get("replyToken"),
            timestamp=payload.get("timestamp", 0),
            source=LineEventSource(
                type=source.get("type", "user"),
                user_id=source.get("userId", ""),
                group_id=source.get("groupId", ""),
                room_id=source.get("roomId", ""),
            ),
            message=payload.get("message"),
            postback=payload.get("postback"),
            raw=payload,
        )

    @property
    def is_message(self) -> bool:
        return self.type == EventType.MESSAGE.value and self.message is not None

    @property
    def is_text(self) -> bool:
        return self.is_message and self.message.get("type") == "text"

    @property
    def text(self) -> Optional[str]:
        return self.message.get("text") if self.is_text else None

    @property
    def user_id(self) -> str:
        return self.source.user_id
