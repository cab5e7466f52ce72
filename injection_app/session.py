"""Graphical session detection from environment variables."""

import logging
import os
from collections.abc import Mapping

from injection_app._types import SessionKind

logger = logging.getLogger(__name__)


def _session_type(env: Mapping[str, str]) -> str:
    # padding from shell profiles is ignored
    return env.get("XDG_SESSION_TYPE", "").strip().lower()


def session_has_wayland(env: Mapping[str, str] | None = None) -> bool:
    """Return True if a Wayland session is detected.

    XDG_SESSION_TYPE=wayland wins; otherwise the presence of WAYLAND_DISPLAY
    (any value) is enough.
    """
    if env is None:
        env = os.environ
    if _session_type(env) == "wayland":
        return True
    return "WAYLAND_DISPLAY" in env


def session_has_x11(env: Mapping[str, str] | None = None) -> bool:
    """Return True if an X11 session (or XWayland display) is detected."""
    if env is None:
        env = os.environ
    if _session_type(env) == "x11":
        return True
    return "DISPLAY" in env


def detect_session(env: Mapping[str, str] | None = None) -> SessionKind:
    """Classify the session, preferring Wayland when both are present."""
    if session_has_wayland(env):
        return SessionKind.WAYLAND
    if session_has_x11(env):
        return SessionKind.X11
    return SessionKind.UNKNOWN


class SessionProbe:
    """Session detector bound to an environment mapping.

    The mapping is re-read on every call, so a probe may be kept for the
    lifetime of the host process.
    """

    def __init__(self, env: Mapping[str, str] | None = None):
        self._env = env

    @property
    def env(self) -> Mapping[str, str]:
        return os.environ if self._env is None else self._env

    def has_wayland(self) -> bool:
        return session_has_wayland(self.env)

    def has_x11(self) -> bool:
        return session_has_x11(self.env)

    def kind(self) -> SessionKind:
        kind = detect_session(self.env)
        logger.debug("Detected session kind: %s", kind.value)
        return kind
