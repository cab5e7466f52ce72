"""Focused window classification (terminal emulator or not)."""

import logging
import subprocess

from injection_app.process import ProcessPort

logger = logging.getLogger(__name__)

# Lowercase window class fragments of known terminal emulators.
TERMINAL_CLASSES = (
    "konsole",
    "org.kde.konsole",
    "kitty",
    "alacritty",
    "gnome-terminal",
    "org.gnome.terminal",
    "xterm",
    "urxvt",
    "terminator",
    "tilix",
    "xfce4-terminal",
    "mate-terminal",
    "lxterminal",
    "st",
    "foot",
    "wezterm",
    "com.mitchellh.ghostty",
    "ghostty",
)

# kdotool covers KDE Wayland, xdotool covers X11 and XWayland windows.
WINDOW_CLASS_TOOLS = ("kdotool", "xdotool")


def is_terminal_class(window_class: str) -> bool:
    """Return True if the class name contains a known terminal identifier."""
    normalized = window_class.strip().lower()
    if not normalized:
        return False
    return any(terminal in normalized for terminal in TERMINAL_CLASSES)


def focused_window_class(runner: ProcessPort) -> str | None:
    """Query the focused window's class name.

    Tries each introspection tool in order; the first one exiting cleanly
    wins. Returns None if none of them succeed.
    """
    for tool in WINDOW_CLASS_TOOLS:
        try:
            result = runner.run([tool, "getactivewindow", "getwindowclassname"])
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("%s unavailable for window detection: %s", tool, e)
            continue

        if not result.ok:
            logger.debug("%s exited with status %d", tool, result.returncode)
            continue

        window_class = result.stdout.decode("utf-8", errors="replace").strip()
        logger.debug("Focused window class via %s: %r", tool, window_class)
        return window_class

    return None


def is_focused_window_terminal(runner: ProcessPort) -> bool:
    """Return True if the focused window is a terminal emulator.

    Undetectable windows count as non-terminal (plain Ctrl+V).
    """
    window_class = focused_window_class(runner)
    if window_class is None:
        logger.debug("Focused window class unknown, assuming non-terminal")
        return False
    return is_terminal_class(window_class)
