"""Shared types and dataclasses for cross-module use."""

from dataclasses import dataclass
from enum import Enum


class InjectBackend(str, Enum):
    """Injection strategy selection. AUTO runs the fallback cascade."""

    AUTO = "auto"
    YDOTOOL = "ydotool"
    WTYPE = "wtype"
    XDOTOOL = "xdotool"

    @classmethod
    def parse(cls, value: "str | InjectBackend") -> "InjectBackend":
        """Resolve a backend name, accepting protocol aliases.

        Raises:
            ValueError: If the name is not a known backend
        """
        if isinstance(value, InjectBackend):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Backend must be a string, got {value!r}")
        normalized = value.strip().lower()
        normalized = _BACKEND_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(b.value for b in cls)
            raise ValueError(
                f"Unknown backend '{value}'. Must be one of: {valid}"
            ) from None


_BACKEND_ALIASES = {
    "uinput": "ydotool",
    "wayland": "wtype",
    "x11": "xdotool",
}


class SessionKind(Enum):
    """Graphical session type."""

    WAYLAND = "wayland"
    X11 = "x11"
    UNKNOWN = "unknown"


class FailureKind(Enum):
    """Why a single strategy attempt failed."""

    UNAVAILABLE = "unavailable"
    LAUNCH_FAILED = "launch_failed"
    EXECUTION_FAILED = "execution_failed"
    IO_FAILED = "io_failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class AttemptFailure:
    """Human-readable failure of one strategy attempt."""

    kind: FailureKind
    reason: str
    backend: str = ""

    def __str__(self) -> str:
        return self.reason


# None means the attempt succeeded.
AttemptOutcome = AttemptFailure | None

# Raw clipboard bytes, None when the clipboard was empty or unreadable.
ClipboardSnapshot = bytes | None


@dataclass
class ProcessResult:
    """Completed external command."""

    args: list[str]
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0
