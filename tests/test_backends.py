"""Tests for individual injection strategies."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import FakeClipboard, FakeRunner
from injection_app._types import FailureKind, ProcessResult
from injection_app.backends import (
    PASTE_KEYS,
    TERMINAL_PASTE_KEYS,
    ClipboardPasteBackend,
    WtypeBackend,
    XdotoolBackend,
    YdotoolBackend,
    has_ydotool_socket,
    paste_key_sequence,
    ydotool_socket_paths,
)
from injection_app.clipboard import TEXT_MIME, ClipboardManager


def _window(name: str | None):
    """Runner response for kdotool reporting a window class."""
    if name is None:
        return 1

    def respond(args, input):
        return ProcessResult(args=args, returncode=0, stdout=name.encode())

    return respond


class TestSocketProbe:
    """Tests for ydotoold socket discovery."""

    def test_default_paths(self):
        paths = ydotool_socket_paths(uid=1000, env={})
        assert paths == [
            Path("/run/user/1000/.ydotool_socket"),
            Path("/tmp/.ydotool_socket"),
        ]

    def test_env_override_probed_first(self):
        paths = ydotool_socket_paths(uid=1000, env={"YDOTOOL_SOCKET": "/custom/sock"})
        assert paths[0] == Path("/custom/sock")
        assert len(paths) == 3

    def test_existing_socket_detected(self, socket_path, missing_socket):
        assert has_ydotool_socket([missing_socket, socket_path]) is True

    def test_no_socket(self, missing_socket):
        assert has_ydotool_socket([missing_socket]) is False


class TestPasteKeys:
    """Tests for raw key code sequences."""

    def test_regular_paste_is_ctrl_v(self):
        assert paste_key_sequence(False) == PASTE_KEYS
        assert PASTE_KEYS == ("29:1", "47:1", "47:0", "29:0")

    def test_terminal_paste_is_ctrl_shift_v(self):
        assert paste_key_sequence(True) == TERMINAL_PASTE_KEYS
        assert TERMINAL_PASTE_KEYS == ("29:1", "42:1", "47:1", "47:0", "42:0", "29:0")


class TestClipboardPasteBackend:
    """Tests for the clipboard paste strategy."""

    def _backend(self, runner, port, socket_paths, sleep=None):
        return ClipboardPasteBackend(
            runner,
            ClipboardManager(port),
            socket_paths,
            settle_delay=0.2,
            sleep=sleep or MagicMock(),
        )

    def test_unavailable_without_socket(self, missing_socket):
        runner = FakeRunner()
        port = FakeClipboard(b"previous")

        failure = self._backend(runner, port, [missing_socket]).attempt("hello")

        assert failure.kind is FailureKind.UNAVAILABLE
        assert "requires ydotool" in failure.reason
        assert runner.calls == []
        assert port.offers == []

    def test_pastes_with_ctrl_v_into_regular_window(self, socket_path):
        runner = FakeRunner({"kdotool": _window("firefox")})
        port = FakeClipboard(b"previous")

        assert self._backend(runner, port, [socket_path]).attempt("hello") is None

        assert runner.calls_to("ydotool") == [["ydotool", "key", *PASTE_KEYS]]
        assert port.offers[0][TEXT_MIME] == b"hello"

    def test_pastes_with_ctrl_shift_v_into_terminal(self, socket_path):
        runner = FakeRunner({"kdotool": _window("org.kde.konsole")})
        port = FakeClipboard(b"previous")

        assert self._backend(runner, port, [socket_path]).attempt("ls -la") is None

        assert runner.calls_to("ydotool") == [["ydotool", "key", *TERMINAL_PASTE_KEYS]]

    def test_restores_previous_clipboard_after_success(self, socket_path):
        port = FakeClipboard(b"previous")
        self._backend(FakeRunner(), port, [socket_path]).attempt("hello")
        assert port.content == b"previous"

    def test_restores_previous_clipboard_after_key_failure(self, socket_path):
        runner = FakeRunner({"ydotool": 1})
        port = FakeClipboard(b"previous")

        failure = self._backend(runner, port, [socket_path]).attempt("hello")

        assert failure.kind is FailureKind.EXECUTION_FAILED
        assert "ydotool exited with status 1" in failure.reason
        assert port.content == b"previous"

    def test_clears_clipboard_when_previously_empty(self, socket_path):
        port = FakeClipboard(None)

        self._backend(FakeRunner(), port, [socket_path]).attempt("hello")

        assert port.content is None
        assert port.clears == 1

    def test_copy_failure_skips_keystroke_and_restores(self, socket_path):
        runner = FakeRunner()
        port = FakeClipboard(b"previous", offer_failures=1)
        sleep = MagicMock()

        failure = self._backend(runner, port, [socket_path], sleep).attempt("hello")

        assert failure.kind is FailureKind.IO_FAILED
        assert "clipboard copy failed" in failure.reason
        assert runner.calls_to("ydotool") == []
        sleep.assert_not_called()
        assert port.content == b"previous"

    def test_settle_delay_before_restore(self, socket_path):
        port = FakeClipboard(b"previous")
        seen = []

        def sleep(seconds):
            seen.append((seconds, port.content))

        self._backend(FakeRunner(), port, [socket_path], sleep).attempt("hello")

        assert seen == [(0.2, b"hello")]
        assert port.content == b"previous"

    def test_restore_failure_does_not_mask_success(self, socket_path):
        port = FakeClipboard(None, fail_clear=True)

        assert self._backend(FakeRunner(), port, [socket_path]).attempt("hello") is None


class TestYdotoolBackend:
    """Tests for the uinput typing strategy."""

    def test_unavailable_without_socket(self, missing_socket):
        runner = FakeRunner()

        failure = YdotoolBackend(runner, [missing_socket]).attempt("hello")

        assert failure.kind is FailureKind.UNAVAILABLE
        assert "systemctl --user start ydotool.service" in failure.reason
        assert runner.calls == []

    def test_types_with_separator_and_no_delay(self, socket_path):
        runner = FakeRunner()

        assert YdotoolBackend(runner, [socket_path]).attempt("-rf /") is None
        assert runner.calls == [["ydotool", "type", "-d", "0", "--", "-rf /"]]

    def test_nonzero_exit(self, socket_path):
        runner = FakeRunner({"ydotool": 2})

        failure = YdotoolBackend(runner, [socket_path]).attempt("hello")

        assert failure.kind is FailureKind.EXECUTION_FAILED
        assert failure.reason == "ydotool: ydotool exited with status 2"
        assert failure.backend == "ydotool"


class TestWtypeBackend:
    """Tests for the Wayland typing strategy."""

    def test_unavailable_without_wayland(self, x11_session):
        runner = FakeRunner()

        failure = WtypeBackend(runner, x11_session).attempt("hello")

        assert failure.kind is FailureKind.UNAVAILABLE
        assert failure.reason == "wayland session not detected"
        assert runner.calls == []

    def test_types_with_separator(self, wayland_session):
        runner = FakeRunner()

        assert WtypeBackend(runner, wayland_session).attempt("--help") is None
        assert runner.calls == [["wtype", "--", "--help"]]

    def test_missing_binary(self, wayland_session):
        runner = FakeRunner({"wtype": FileNotFoundError("wtype")})

        failure = WtypeBackend(runner, wayland_session).attempt("hello")

        assert failure.kind is FailureKind.LAUNCH_FAILED
        assert "install wtype" in failure.reason


class TestXdotoolBackend:
    """Tests for the X11 typing strategy."""

    def test_unavailable_without_x11(self, wayland_session):
        failure = XdotoolBackend(FakeRunner(), wayland_session).attempt("hello")

        assert failure.kind is FailureKind.UNAVAILABLE
        assert failure.reason == "x11 session not detected"

    def test_types_clearing_modifiers(self, x11_session):
        runner = FakeRunner()

        assert XdotoolBackend(runner, x11_session).attempt("hello") is None
        assert runner.calls == [
            ["xdotool", "type", "--clearmodifiers", "--delay", "0", "--", "hello"]
        ]

    @pytest.mark.parametrize("status", [1, 127])
    def test_nonzero_exit_embeds_status(self, x11_session, status):
        runner = FakeRunner({"xdotool": status})

        failure = XdotoolBackend(runner, x11_session).attempt("hello")

        assert f"status {status}" in failure.reason
        assert failure.reason.startswith("x11: ")
