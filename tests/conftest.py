"""Shared fakes for process, clipboard and session collaborators."""

from pathlib import Path

import pytest

from injection_app._types import ProcessResult
from injection_app.clipboard import TEXT_MIME, ClipboardError
from injection_app.session import SessionProbe


class FakeRunner:
    """Records commands instead of spawning them.

    ``responses`` maps a program name to an exit status, a ProcessResult,
    an exception instance to raise, or a callable ``(args, input)``.
    Unlisted programs exit 0.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = responses or {}
        self.calls: list[list[str]] = []
        self.inputs: list[bytes | None] = []

    def run(self, args, *, input=None, capture=True):
        args = list(args)
        self.calls.append(args)
        self.inputs.append(input)

        response = self.responses.get(args[0], 0)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(args, input)
        if isinstance(response, ProcessResult):
            return response
        return ProcessResult(args=args, returncode=response)

    @property
    def programs(self) -> list[str]:
        return [call[0] for call in self.calls]

    def calls_to(self, program: str) -> list[list[str]]:
        return [call for call in self.calls if call[0] == program]


class FakeClipboard:
    """In-memory clipboard port.

    Args:
        content: Initial text bytes, None for an empty clipboard
        fail_read: Raise on read
        offer_failures: Number of initial offers that raise
        fail_clear: Raise on clear
    """

    def __init__(
        self,
        content: bytes | None = None,
        *,
        fail_read: bool = False,
        offer_failures: int = 0,
        fail_clear: bool = False,
    ):
        self.content = content
        self.entries: dict[str, bytes] = {TEXT_MIME: content} if content else {}
        self.fail_read = fail_read
        self.offer_failures = offer_failures
        self.fail_clear = fail_clear
        self.offers: list[dict[str, bytes]] = []
        self.clears = 0

    def read(self):
        if self.fail_read:
            raise ClipboardError("read failed")
        return self.content

    def offer(self, entries):
        if self.offer_failures > 0:
            self.offer_failures -= 1
            raise ClipboardError("offer failed")
        self.offers.append(dict(entries))
        self.entries = dict(entries)
        self.content = entries[TEXT_MIME]

    def clear(self):
        if self.fail_clear:
            raise ClipboardError("clear failed")
        self.clears += 1
        self.entries = {}
        self.content = None


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def socket_path(tmp_path) -> Path:
    """An existing ydotoold socket placeholder."""
    path = tmp_path / ".ydotool_socket"
    path.touch()
    return path


@pytest.fixture
def missing_socket(tmp_path) -> Path:
    return tmp_path / "missing" / ".ydotool_socket"


@pytest.fixture
def wayland_session():
    return SessionProbe({"XDG_SESSION_TYPE": "wayland", "WAYLAND_DISPLAY": "wayland-0"})


@pytest.fixture
def x11_session():
    return SessionProbe({"XDG_SESSION_TYPE": "x11", "DISPLAY": ":0"})


@pytest.fixture
def no_session():
    return SessionProbe({})
