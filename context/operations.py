"""
Operation table — every (delivery mode × content type) a context exposes.

  reply_<type>              reply_<type>(reply_token, ...)    consumes the reply token
  push_<type>               push_<type>(user_id, ...)         needs a session
  send_<type>               push_<type>(user_id, ...)         alias of push
  send_<type>_with_delay    push_<type>(user_id, ...)         delay override, deprecated
                                                              (except text)
"""
from __future__ import annotations

from dataclasses import dataclass

from context.base import UnsupportedOperationError
from models.schemas import ContentType, DeliveryMode


@dataclass(frozen=True)
class OperationSpec:
    mode: DeliveryMode
    content_type: ContentType

    @property
    def name(self) -> str:
        if self.mode == DeliveryMode.SEND_WITH_DELAY:
            return f"send_{self.content_type.value}_with_delay"
        return f"{self.mode.value}_{self.content_type.value}"

    @property
    def target_method(self) -> str:
        """Capability method invoked. Every non-reply family is a push underneath."""
        if self.mode == DeliveryMode.REPLY:
            return f"reply_{self.content_type.value}"
        return f"push_{self.content_type.value}"

    @property
    def consumes_reply(self) -> bool:
        return self.mode == DeliveryMode.REPLY

    @property
    def requires_session(self) -> bool:
        return self.mode != DeliveryMode.REPLY

    @property
    def delay_override(self) -> bool:
        return self.mode == DeliveryMode.SEND_WITH_DELAY

    @property
    def deprecated(self) -> bool:
        return self.delay_override and self.content_type != ContentType.TEXT

    def describe(self) -> str:
        if self.consumes_reply:
            return f"Reply {self.content_type.value} message to the event using its reply token."
        prefix = "Deprecated. " if self.deprecated else ""
        suffix = " after `delay` milliseconds" if self.delay_override else ""
        return f"{prefix}Push {self.content_type.value} message to the owner of the session{suffix}."


OPERATIONS: dict[tuple[DeliveryMode, ContentType], OperationSpec] = {
    (mode, content_type): OperationSpec(mode, content_type)
    for mode in DeliveryMode
    for content_type in ContentType
}


def get_operation(mode: DeliveryMode | str, content_type: ContentType | str) -> OperationSpec:
    try:
        key = (DeliveryMode(mode), ContentType(content_type))
    except ValueError:
        raise UnsupportedOperationError(f"{mode}:{content_type}") from None
    return OPERATIONS[key]
