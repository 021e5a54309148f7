"""
LINE Context — per-event dispatch of replies and pushes.

Every send becomes a SendJob on the context's private DelayableJobQueue,
so calls fired without awaiting still go out one at a time, in call order,
each preceded by the pacing delay.

Rules enforced here:
- the event's reply token is consumed at most once (reply_* methods)
- push_* / send_* need a session; without one they log and resolve to None
- send_<type>_with_delay is deprecated for every type except text
"""
from __future__ import annotations

import asyncio
import warnings
import structlog
from typing import Any, Optional

from config.settings import get_settings
from context.base import (
    Context, LineMessagingClient, ReplyTokenConsumedError,
)
from context.operations import OPERATIONS, OperationSpec, get_operation
from job_queue.delay_queue import DelayableJobQueue, SendJob
from models.schemas import ContentType, DeliveryMode, LineEvent, LineSession, ReplyState

logger = structlog.get_logger()


def _operation(mode: DeliveryMode, content_type: ContentType):
    """Build the public method bound to one row of the operation table."""
    op = OPERATIONS[(mode, content_type)]

    if op.delay_override:
        def method(self, delay: float, *args: Any) -> asyncio.Future:
            return self._dispatch(op, args, delay=delay)
    else:
        def method(self, *args: Any) -> asyncio.Future:
            return self._dispatch(op, args)

    method.__name__ = op.name
    method.__qualname__ = f"LineContext.{op.name}"
    method.__doc__ = op.describe()
    return method


class LineContext(Context):
    """
    Dispatch context for one inbound LINE event.

    Usage:
        context = LineContext(client=client, event=event, session=session)
        await context.reply_text("Hello")
        context.push_image(original_url, preview_url)   # queued behind the reply
        await context.flush()
    """

    def __init__(
        self,
        client: LineMessagingClient,
        event: LineEvent,
        session: Optional[LineSession] = None,
        message_delay: Optional[float] = None,
        show_indicators: Optional[bool] = None,
    ):
        dispatch_cfg = get_settings().dispatch
        self._client = client
        self._event = event
        self._session = session
        self._reply_state = ReplyState.UNREPLIED
        self._message_delay = dispatch_cfg.message_delay_ms
        self._show_indicators = (
            dispatch_cfg.show_indicators if show_indicators is None else show_indicators
        )
        if message_delay is not None:
            self.set_message_delay(message_delay)
        self._job_queue = DelayableJobQueue()
        self._job_queue.before_each(lambda job: asyncio.sleep(job.delay / 1000))

    # ── Accessors ─────────────────────────────────────────────

    @property
    def platform(self) -> str:
        return "line"

    @property
    def client(self) -> LineMessagingClient:
        return self._client

    @property
    def event(self) -> LineEvent:
        return self._event

    @property
    def session(self) -> Optional[LineSession]:
        return self._session

    @property
    def reply_state(self) -> ReplyState:
        return self._reply_state

    @property
    def replied(self) -> bool:
        """Whether the reply token has already been used."""
        return self._reply_state is ReplyState.REPLIED

    @property
    def message_delay(self) -> float:
        return self._message_delay

    # ── Pacing ────────────────────────────────────────────────

    def set_message_delay(self, milliseconds: float) -> None:
        """Set delay before every subsequently queued message."""
        if milliseconds < 0:
            raise ValueError(f"message delay must be non-negative, got {milliseconds}")
        self._message_delay = milliseconds

    async def typing(self, milliseconds: float) -> None:
        """Pause for milliseconds, outside of the send queue."""
        await asyncio.sleep(milliseconds / 1000)

    async def flush(self) -> None:
        """Wait until every queued send has completed."""
        await self._job_queue.join()

    # ── Dispatch ──────────────────────────────────────────────

    def dispatch(
        self,
        mode: DeliveryMode | str,
        content_type: ContentType | str,
        *args: Any,
        delay: Optional[float] = None,
    ) -> asyncio.Future:
        """
        Send content of `content_type` through `mode`. Equivalent to calling
        the named method, e.g. dispatch("push", "image", url, preview) is
        push_image(url, preview). For "send_with_delay" the first positional
        argument is the delay, as in send_image_with_delay(delay, url, preview),
        unless `delay` is given as a keyword.
        """
        op = get_operation(mode, content_type)
        if op.delay_override and delay is None:
            if not args:
                raise TypeError(f"{op.name}() missing required argument: 'delay'")
            delay, *args = args
        return self._dispatch(op, tuple(args), delay=delay)

    def _dispatch(
        self, op: OperationSpec, args: tuple, delay: Optional[float] = None
    ) -> asyncio.Future:
        loop = asyncio.get_running_loop()

        if op.deprecated:
            warnings.warn(f"{op.name} is deprecated.", DeprecationWarning, stacklevel=3)
            logger.warning("deprecated_operation", operation=op.name)

        if op.consumes_reply:
            target = self._check_reply_token(op)
        else:
            if self._session is None:
                return self._skip_without_session(loop, op)
            target = self._session.user.id

        future, job = self._build_job(
            loop,
            op,
            (target, *args),
            self._message_delay if delay is None else delay,
        )
        if op.consumes_reply:
            self._reply_state = ReplyState.REPLIED
        self._job_queue.enqueue(job)
        return future

    def _check_reply_token(self, op: OperationSpec) -> Optional[str]:
        """Guard for the one legal UNREPLIED → REPLIED transition."""
        if self._reply_state is ReplyState.REPLIED:
            raise ReplyTokenConsumedError(op.name)
        return self._event.reply_token

    def _skip_without_session(self, loop: asyncio.AbstractEventLoop, op: OperationSpec) -> asyncio.Future:
        logger.warning(
            "missing_session",
            operation=op.name,
            platform=self.platform,
            message=f"{op.name}: should not be called in context without session",
        )
        future = loop.create_future()
        future.set_result(None)
        return future

    def _build_job(
        self, loop: asyncio.AbstractEventLoop, op: OperationSpec, args: tuple, delay: float
    ) -> tuple[asyncio.Future, SendJob]:
        future = loop.create_future()

        def resolve(result: Any) -> None:
            if not future.done():
                future.set_result(result)

        def reject(error: BaseException) -> None:
            if future.done():
                return
            if isinstance(error, asyncio.CancelledError):
                future.cancel()
            else:
                future.set_exception(error)

        job = SendJob(
            instance=self._client,
            method=op.target_method,
            args=args,
            delay=delay,
            show_indicators=self._show_indicators,
            mode=op.mode,
            on_success=resolve,
            on_error=reject,
        )
        return future, job

    # ── Reply (consumes the reply token) ──────────────────────

    reply_text = _operation(DeliveryMode.REPLY, ContentType.TEXT)
    reply_image = _operation(DeliveryMode.REPLY, ContentType.IMAGE)
    reply_video = _operation(DeliveryMode.REPLY, ContentType.VIDEO)
    reply_audio = _operation(DeliveryMode.REPLY, ContentType.AUDIO)
    reply_location = _operation(DeliveryMode.REPLY, ContentType.LOCATION)
    reply_sticker = _operation(DeliveryMode.REPLY, ContentType.STICKER)
    reply_imagemap = _operation(DeliveryMode.REPLY, ContentType.IMAGEMAP)
    reply_button_template = _operation(DeliveryMode.REPLY, ContentType.BUTTON_TEMPLATE)
    reply_confirm_template = _operation(DeliveryMode.REPLY, ContentType.CONFIRM_TEMPLATE)
    reply_carousel_template = _operation(DeliveryMode.REPLY, ContentType.CAROUSEL_TEMPLATE)
    reply_image_carousel_template = _operation(DeliveryMode.REPLY, ContentType.IMAGE_CAROUSEL_TEMPLATE)

    # ── Push (needs a session) ────────────────────────────────

    push_text = _operation(DeliveryMode.PUSH, ContentType.TEXT)
    push_image = _operation(DeliveryMode.PUSH, ContentType.IMAGE)
    push_video = _operation(DeliveryMode.PUSH, ContentType.VIDEO)
    push_audio = _operation(DeliveryMode.PUSH, ContentType.AUDIO)
    push_location = _operation(DeliveryMode.PUSH, ContentType.LOCATION)
    push_sticker = _operation(DeliveryMode.PUSH, ContentType.STICKER)
    push_imagemap = _operation(DeliveryMode.PUSH, ContentType.IMAGEMAP)
    push_button_template = _operation(DeliveryMode.PUSH, ContentType.BUTTON_TEMPLATE)
    push_confirm_template = _operation(DeliveryMode.PUSH, ContentType.CONFIRM_TEMPLATE)
    push_carousel_template = _operation(DeliveryMode.PUSH, ContentType.CAROUSEL_TEMPLATE)
    push_image_carousel_template = _operation(DeliveryMode.PUSH, ContentType.IMAGE_CAROUSEL_TEMPLATE)

    # ── Send (push aliases) ───────────────────────────────────

    send_text = _operation(DeliveryMode.SEND, ContentType.TEXT)
    send_image = _operation(DeliveryMode.SEND, ContentType.IMAGE)
    send_video = _operation(DeliveryMode.SEND, ContentType.VIDEO)
    send_audio = _operation(DeliveryMode.SEND, ContentType.AUDIO)
    send_location = _operation(DeliveryMode.SEND, ContentType.LOCATION)
    send_sticker = _operation(DeliveryMode.SEND, ContentType.STICKER)
    send_imagemap = _operation(DeliveryMode.SEND, ContentType.IMAGEMAP)
    send_button_template = _operation(DeliveryMode.SEND, ContentType.BUTTON_TEMPLATE)
    send_confirm_template = _operation(DeliveryMode.SEND, ContentType.CONFIRM_TEMPLATE)
    send_carousel_template = _operation(DeliveryMode.SEND, ContentType.CAROUSEL_TEMPLATE)
    send_image_carousel_template = _operation(DeliveryMode.SEND, ContentType.IMAGE_CAROUSEL_TEMPLATE)

    send_text_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.TEXT)
    send_image_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.IMAGE)
    send_video_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.VIDEO)
    send_audio_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.AUDIO)
    send_location_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.LOCATION)
    send_sticker_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.STICKER)
    send_imagemap_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.IMAGEMAP)
    send_button_template_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.BUTTON_TEMPLATE)
    send_confirm_template_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.CONFIRM_TEMPLATE)
    send_carousel_template_with_delay = _operation(DeliveryMode.SEND_WITH_DELAY, ContentType.CAROUSEL_TEMPLATE)
    send_image_carousel_template_with_delay = _operation(
        DeliveryMode.SEND_WITH_DELAY, ContentType.IMAGE_CAROUSEL_TEMPLATE
    )
