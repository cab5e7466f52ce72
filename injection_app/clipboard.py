"""System clipboard access with clipboard-history secrecy hints.

Injected text travels through the shared clipboard, so every write offers a
second MIME entry (``x-kde-passwordManagerHint``) asking history tools such
as Klipper not to record it. The previous contents are snapshotted first and
put back afterwards.
"""

import logging
import subprocess
import sys
from contextlib import contextmanager
from typing import Iterator, Protocol

from injection_app._types import ClipboardSnapshot
from injection_app.clipboard_server import READY, encode_offer
from injection_app.process import ProcessPort

logger = logging.getLogger(__name__)

TEXT_MIME = "text/plain;charset=utf-8"
PASSWORD_MANAGER_HINT_MIME = "x-kde-passwordManagerHint"
PASSWORD_MANAGER_HINT = b"secret"

HELPER_COMMAND = [sys.executable, "-m", "injection_app.clipboard_server"]


class ClipboardError(Exception):
    """Clipboard could not be read or written."""

    pass


class ClipboardPort(Protocol):
    """Raw clipboard access. Implementations raise ClipboardError."""

    def read(self) -> bytes | None: ...

    def offer(self, entries: dict[str, bytes]) -> None:
        """Replace the clipboard with one offer carrying every MIME entry."""
        ...

    def clear(self) -> None: ...


class WlClipboard:
    """Clipboard port backed by the wl-clipboard command line tools.

    ``wl-copy`` serves one MIME type per offer, so only the first entry is
    copied and the clipboard-history hint is lost. Use it only where the GTK
    helper cannot run.
    """

    def __init__(self, runner: ProcessPort):
        self.runner = runner
        self._warned_hint_loss = False

    def _run(self, args: list[str], **kwargs):
        try:
            return self.runner.run(args, **kwargs)
        except FileNotFoundError as e:
            raise ClipboardError(
                f"{args[0]} not found; install wl-clipboard"
            ) from e
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ClipboardError(f"failed to run {args[0]}: {e}") from e

    def read(self) -> bytes | None:
        result = self._run(["wl-paste", "--no-newline"])
        if not result.ok:
            # wl-paste exits nonzero when nothing is copied
            return None
        return result.stdout

    def offer(self, entries: dict[str, bytes]) -> None:
        if not entries:
            raise ClipboardError("nothing to offer")
        mime_type, data = next(iter(entries.items()))
        if len(entries) > 1 and not self._warned_hint_loss:
            logger.warning(
                "wl-copy cannot offer %s alongside %s; clipboard history "
                "tools may record injected text",
                ", ".join(list(entries)[1:]),
                mime_type,
            )
            self._warned_hint_loss = True
        result = self._run(
            ["wl-copy", "--type", mime_type], input=data, capture=False
        )
        if not result.ok:
            raise ClipboardError(f"wl-copy exited with status {result.returncode}")

    def clear(self) -> None:
        result = self._run(["wl-copy", "--clear"], capture=False)
        if not result.ok:
            raise ClipboardError(f"wl-copy exited with status {result.returncode}")


class GtkClipboard(WlClipboard):
    """Clipboard port that offers every MIME entry in a single offer.

    Offers are served by a detached ``injection_app.clipboard_server``
    process holding one GTK content provider for all entries. Reads and
    clears still go through wl-clipboard.
    """

    def __init__(self, runner: ProcessPort, popen=subprocess.Popen):
        super().__init__(runner)
        self.popen = popen
        self._helper = None

    def offer(self, entries: dict[str, bytes]) -> None:
        """Hand the entries to a new clipboard helper.

        Args:
            entries: MIME type to payload, all offered together.

        Raises:
            ClipboardError: If the helper cannot start or fails to claim
                the clipboard.
        """
        if not entries:
            raise ClipboardError("nothing to offer")
        if self._helper is not None:
            # reap the previous owner if it already lost the clipboard
            self._helper.poll()

        try:
            proc = self.popen(
                HELPER_COMMAND,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise ClipboardError(f"failed to start clipboard helper: {e}") from e

        try:
            proc.stdin.write(encode_offer(entries))
            proc.stdin.close()
            status = proc.stdout.readline().strip()
        except OSError as e:
            proc.kill()
            raise ClipboardError(f"clipboard helper failed: {e}") from e
        finally:
            proc.stdout.close()

        if status != READY:
            returncode = proc.wait()
            detail = status.decode("utf-8", errors="replace")
            raise ClipboardError(
                f"clipboard helper failed: {detail or f'exited with status {returncode}'}"
            )

        self._helper = proc
        logger.debug(
            "Clipboard helper %s offering %s", proc.pid, ", ".join(entries)
        )


CLIPBOARD_PORTS = {
    "gtk": GtkClipboard,
    "wl-copy": WlClipboard,
}


def make_clipboard_port(name: str, runner: ProcessPort) -> ClipboardPort:
    """Build the clipboard port registered under name.

    Raises:
        ValueError: If name is not a known port.
    """
    try:
        port_cls = CLIPBOARD_PORTS[name]
    except KeyError:
        raise ValueError(
            f"Unknown clipboard '{name}'. Must be one of: {', '.join(CLIPBOARD_PORTS)}"
        ) from None
    return port_cls(runner)


class ClipboardManager:
    """Save, write and restore the clipboard around a paste.

    Writers return None on success or a failure reason; they never raise.
    """

    def __init__(self, port: ClipboardPort):
        self.port = port

    def save(self) -> ClipboardSnapshot:
        """Snapshot current contents. Empty and unreadable both yield None."""
        try:
            data = self.port.read()
        except ClipboardError as e:
            logger.debug("Clipboard unreadable, treating as empty: %s", e)
            return None
        return data or None

    def _offer_secret(self, data: bytes) -> None:
        self.port.offer(
            {
                TEXT_MIME: data,
                PASSWORD_MANAGER_HINT_MIME: PASSWORD_MANAGER_HINT,
            }
        )

    def copy_secret(self, text: str) -> str | None:
        """Put text on the clipboard, hidden from clipboard history."""
        try:
            self._offer_secret(text.encode("utf-8"))
        except ClipboardError as e:
            return f"clipboard copy failed: {e}"
        return None

    def restore(self, data: bytes) -> str | None:
        """Re-offer saved bytes, also hidden from clipboard history."""
        try:
            self._offer_secret(data)
        except ClipboardError as e:
            return f"clipboard restore failed: {e}"
        return None

    def clear(self) -> str | None:
        try:
            self.port.clear()
        except ClipboardError as e:
            return f"clipboard clear failed: {e}"
        return None

    @contextmanager
    def preserved(self) -> Iterator[ClipboardSnapshot]:
        """Snapshot the clipboard and put it back on every exit path.

        An empty snapshot is restored by clearing. Restore failures are
        logged and swallowed so they never mask the caller's outcome.
        """
        snapshot = self.save()
        try:
            yield snapshot
        finally:
            if snapshot is not None:
                error = self.restore(snapshot)
            else:
                error = self.clear()
            if error:
                logger.warning("Clipboard not restored: %s", error)
            elif snapshot is None:
                logger.debug("Clipboard cleared")
            else:
                logger.debug("Clipboard restored (%d bytes)", len(snapshot))
