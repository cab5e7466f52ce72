"""Clipboard owner process serving one multi-MIME offer.

Wayland and X11 clipboards are served by whichever client claimed them, so a
process has to stay alive until someone else copies. ``GtkClipboard`` starts
this module with the entries on stdin. It claims the clipboard with a single
GTK content provider covering every MIME type, prints ``ready`` and then
serves paste requests until another client takes ownership.
"""

import base64
import json
import logging
import sys

logger = logging.getLogger(__name__)

READY = b"ready"


def encode_offer(entries: dict[str, bytes]) -> bytes:
    """Serialize MIME entries for the helper's stdin."""
    return json.dumps(
        {mime: base64.b64encode(data).decode("ascii") for mime, data in entries.items()}
    ).encode("utf-8")


def decode_offer(payload: bytes) -> dict[str, bytes]:
    """Parse the helper's stdin back into MIME entries.

    Raises:
        ValueError: If the payload is not a JSON object of base64 strings.
    """
    raw = json.loads(payload)
    if not isinstance(raw, dict) or not raw:
        raise ValueError("offer must be a non-empty JSON object")
    return {mime: base64.b64decode(data, validate=True) for mime, data in raw.items()}


def build_provider(Gdk, GLib, entries: dict[str, bytes]):
    """Build one content provider advertising every entry."""
    providers = [
        Gdk.ContentProvider.new_for_bytes(mime, GLib.Bytes.new(data))
        for mime, data in entries.items()
    ]
    return Gdk.ContentProvider.new_union(providers)


def serve(entries: dict[str, bytes]) -> None:
    """Claim the clipboard and block until ownership is lost.

    Raises:
        ImportError: If PyGObject is not installed.
        ValueError: If GTK 4 is not available to PyGObject.
        RuntimeError: If no display can be opened.
    """
    import gi

    gi.require_version("Gtk", "4.0")
    gi.require_version("Gdk", "4.0")
    from gi.repository import Gdk, GLib, Gtk

    Gtk.init()
    display = Gdk.Display.get_default()
    if display is None:
        raise RuntimeError("no display available")

    clipboard = display.get_clipboard()
    clipboard.set_content(build_provider(Gdk, GLib, entries))

    loop = GLib.MainLoop()

    def on_changed(cb):
        if not cb.is_local():
            logger.debug("Clipboard taken over, exiting")
            loop.quit()

    clipboard.connect("changed", on_changed)

    sys.stdout.buffer.write(READY + b"\n")
    sys.stdout.flush()
    loop.run()


def main() -> int:
    try:
        entries = decode_offer(sys.stdin.buffer.read())
    except ValueError as e:
        sys.stdout.buffer.write(f"invalid offer: {e}\n".encode("utf-8"))
        return 2

    try:
        serve(entries)
    except (ImportError, ValueError, RuntimeError) as e:
        sys.stdout.buffer.write(f"{e}\n".encode("utf-8"))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
