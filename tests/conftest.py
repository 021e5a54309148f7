"""Shared test fixtures for the LINE dispatch layer."""
import asyncio
import pytest
from typing import Any

from config.settings import load_settings, reset_settings
from context.line_context import LineContext
from models.schemas import LineEvent, LineSession, LineUser


class FakeLineClient:
    """
    Records every reply_*/push_* call in order. Methods listed in
    `fail_on` raise RuntimeError after being recorded.
    """

    def __init__(self, fail_on: tuple[str, ...] = ()):
        self.calls: list[tuple[str, tuple]] = []
        self.fail_on = set(fail_on)

    def __getattr__(self, name: str):
        if not name.startswith(("reply_", "push_")):
            raise AttributeError(name)

        async def call(*args: Any) -> dict[str, Any]:
            self.calls.append((name, args))
            await asyncio.sleep(0)
            if name in self.fail_on:
                raise RuntimeError(f"{name} failed")
            return {"method": name, "args": list(args)}

        return call

    @property
    def methods(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture(autouse=True)
def default_settings(tmp_path):
    """Every test starts from built-in defaults, not the repo's settings.yaml."""
    settings = load_settings(str(tmp_path / "missing.yaml"))
    yield settings
    reset_settings()


@pytest.fixture
def client() -> FakeLineClient:
    return FakeLineClient()


@pytest.fixture
def raw_event() -> dict[str, Any]:
    return {
        "replyToken": "nHuyWiB7yP5Zw52FIkcQobQuGDXCTA",
        "type": "message",
        "timestamp": 1462629479859,
        "source": {"type": "user", "userId": "U206d25c2ea6bd87c17655609a1c37cb8"},
        "message": {"id": "325708", "type": "text", "text": "Hello, world"},
    }


@pytest.fixture
def event(raw_event) -> LineEvent:
    return LineEvent.from_raw(raw_event)


@pytest.fixture
def session() -> LineSession:
    return LineSession(user=LineUser(id="U206d25c2ea6bd87c17655609a1c37cb8", display_name="Rajesh"))


@pytest.fixture
def context(client, event, session) -> LineContext:
    return LineContext(client=client, event=event, session=session, message_delay=0)


@pytest.fixture
def context_without_session(client, event) -> LineContext:
    return LineContext(client=client, event=event, message_delay=0)
