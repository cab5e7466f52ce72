"""Text injection strategies.

Each strategy tries one mechanism and reports the outcome as a value:
None on success, an AttemptFailure otherwise. Strategies never raise, so the
fallback engine can aggregate reasons across the whole cascade.
"""

import abc
import dataclasses
import logging
import os
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from injection_app._types import AttemptFailure, AttemptOutcome, FailureKind
from injection_app.clipboard import ClipboardManager
from injection_app.process import ProcessPort, run_command
from injection_app.session import SessionProbe
from injection_app.window import is_focused_window_terminal

logger = logging.getLogger(__name__)

YDOTOOL_INSTALL_HINT = (
    "install ydotool and run `systemctl --user start ydotool.service`"
)
YDOTOOLD_NOT_RUNNING = (
    "ydotoold not running; start with `systemctl --user start ydotool.service` "
    "(see README for uinput permissions setup)"
)

# Linux input event codes
KEY_LEFTCTRL = 29
KEY_LEFTSHIFT = 42
KEY_V = 47


def _press(code: int) -> str:
    return f"{code}:1"


def _release(code: int) -> str:
    return f"{code}:0"


PASTE_KEYS = (
    _press(KEY_LEFTCTRL),
    _press(KEY_V),
    _release(KEY_V),
    _release(KEY_LEFTCTRL),
)

# Terminals bind Ctrl+V to literal-next, paste is Ctrl+Shift+V.
TERMINAL_PASTE_KEYS = (
    _press(KEY_LEFTCTRL),
    _press(KEY_LEFTSHIFT),
    _press(KEY_V),
    _release(KEY_V),
    _release(KEY_LEFTSHIFT),
    _release(KEY_LEFTCTRL),
)

DEFAULT_SETTLE_DELAY = 0.2


def paste_key_sequence(is_terminal: bool) -> tuple[str, ...]:
    """Return the ydotool key events for a paste shortcut."""
    return TERMINAL_PASTE_KEYS if is_terminal else PASTE_KEYS


def ydotool_socket_paths(
    uid: int | None = None,
    env: Mapping[str, str] | None = None,
) -> list[Path]:
    """Return the well-known ydotoold socket locations, most specific first.

    YDOTOOL_SOCKET, when set, is probed before the defaults.
    """
    if env is None:
        env = os.environ
    if uid is None:
        uid = os.getuid()

    paths = []
    if override := env.get("YDOTOOL_SOCKET"):
        paths.append(Path(override))
    paths.append(Path(f"/run/user/{uid}/.ydotool_socket"))
    paths.append(Path("/tmp/.ydotool_socket"))
    return paths


def has_ydotool_socket(paths: Sequence[Path]) -> bool:
    """Return True if any socket path exists. This is not a connectivity check."""
    for path in paths:
        if path.exists():
            logger.debug("ydotoold socket found: %s", path)
            return True
    return False


class Backend(abc.ABC):
    """One fallible injection mechanism."""

    name: str = ""

    @abc.abstractmethod
    def attempt(self, text: str) -> AttemptOutcome:
        """Try to deliver text to the focused window.

        Args:
            text: Text to inject

        Returns:
            None on success, otherwise the reason this mechanism failed
        """

    def _unavailable(self, reason: str) -> AttemptFailure:
        return AttemptFailure(FailureKind.UNAVAILABLE, reason, self.name)

    def _labelled(self, failure: AttemptOutcome, label: str) -> AttemptOutcome:
        if failure is None:
            return None
        return dataclasses.replace(
            failure, reason=f"{label}: {failure.reason}", backend=self.name
        )


class ClipboardPasteBackend(Backend):
    """Copy text to the clipboard and press the paste shortcut via ydotool.

    The previous clipboard contents are restored (or the clipboard cleared)
    on every path, after a settle delay that lets the target application
    read the pasted value.
    """

    name = "clipboard"

    def __init__(
        self,
        runner: ProcessPort,
        clipboard: ClipboardManager,
        socket_paths: Sequence[Path],
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.runner = runner
        self.clipboard = clipboard
        self.socket_paths = socket_paths
        self.settle_delay = settle_delay
        self.sleep = sleep

    def attempt(self, text: str) -> AttemptOutcome:
        if not has_ydotool_socket(self.socket_paths):
            return self._unavailable(
                "clipboard paste requires ydotool for key simulation"
            )

        with self.clipboard.preserved():
            error = self.clipboard.copy_secret(text)
            if error:
                return AttemptFailure(FailureKind.IO_FAILED, error, self.name)

            is_terminal = is_focused_window_terminal(self.runner)
            keys = paste_key_sequence(is_terminal)
            logger.debug(
                "Pasting with %s", "Ctrl+Shift+V" if is_terminal else "Ctrl+V"
            )

            failure = run_command(
                self.runner, "ydotool", ["key", *keys], YDOTOOL_INSTALL_HINT
            )
            self.sleep(self.settle_delay)

        return self._labelled(failure, "clipboard paste")


class YdotoolBackend(Backend):
    """Type text through the ydotoold uinput daemon (works on any session)."""

    name = "ydotool"

    def __init__(self, runner: ProcessPort, socket_paths: Sequence[Path]):
        self.runner = runner
        self.socket_paths = socket_paths

    def attempt(self, text: str) -> AttemptOutcome:
        if not has_ydotool_socket(self.socket_paths):
            return self._unavailable(YDOTOOLD_NOT_RUNNING)

        failure = run_command(
            self.runner,
            "ydotool",
            ["type", "-d", "0", "--", text],
            YDOTOOL_INSTALL_HINT,
        )
        return self._labelled(failure, "ydotool")


class WtypeBackend(Backend):
    """Type text through the Wayland virtual-keyboard protocol."""

    name = "wtype"

    def __init__(self, runner: ProcessPort, session: SessionProbe):
        self.runner = runner
        self.session = session

    def attempt(self, text: str) -> AttemptOutcome:
        if not self.session.has_wayland():
            return self._unavailable("wayland session not detected")

        failure = run_command(
            self.runner,
            "wtype",
            ["--", text],
            "install wtype to enable Wayland text injection",
        )
        return self._labelled(failure, "wayland")


class XdotoolBackend(Backend):
    """Type text through XTEST on X11."""

    name = "xdotool"

    def __init__(self, runner: ProcessPort, session: SessionProbe):
        self.runner = runner
        self.session = session

    def attempt(self, text: str) -> AttemptOutcome:
        if not self.session.has_x11():
            return self._unavailable("x11 session not detected")

        failure = run_command(
            self.runner,
            "xdotool",
            ["type", "--clearmodifiers", "--delay", "0", "--", text],
            "install xdotool to enable X11 text injection",
        )
        return self._labelled(failure, "x11")
