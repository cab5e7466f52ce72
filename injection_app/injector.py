"""Text injection into the focused window with ordered backend fallback."""

import asyncio
import functools
import logging
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from injection_app._types import AttemptFailure, FailureKind, InjectBackend
from injection_app.backends import (
    Backend,
    ClipboardPasteBackend,
    WtypeBackend,
    XdotoolBackend,
    YdotoolBackend,
    ydotool_socket_paths,
)
from injection_app.clipboard import (
    ClipboardManager,
    ClipboardPort,
    make_clipboard_port,
)
from injection_app.config import InjectorConfig
from injection_app.process import ProcessPort, ProcessRunner
from injection_app.session import SessionProbe

logger = logging.getLogger(__name__)

# Fastest and least prone to modifier races first, session-specific tools last.
CASCADE_ORDER = ("clipboard", "ydotool", "wtype", "xdotool")


class InjectionError(Exception):
    """Base exception for injection failures.

    Attributes:
        failures: Every strategy failure that led to this error, in attempt order
    """

    def __init__(self, message: str, failures: Sequence[AttemptFailure] = ()):
        super().__init__(message)
        self.failures = list(failures)


class BackendUnavailableError(InjectionError):
    """Required daemon socket or display session is absent."""

    pass


class CommandNotFoundError(InjectionError):
    """Backend binary (ydotool/wtype/xdotool) could not be launched."""

    pass


class CommandFailedError(InjectionError):
    """Backend binary ran but exited with a non-zero status."""

    pass


class TimeoutError(InjectionError):
    """Backend binary exceeded the configured timeout."""

    pass


_ERRORS_BY_KIND = {
    FailureKind.UNAVAILABLE: BackendUnavailableError,
    FailureKind.LAUNCH_FAILED: CommandNotFoundError,
    FailureKind.EXECUTION_FAILED: CommandFailedError,
    FailureKind.TIMED_OUT: TimeoutError,
}


def error_for(failure: AttemptFailure) -> InjectionError:
    """Build the exception matching a single strategy failure."""
    error_cls = _ERRORS_BY_KIND.get(failure.kind, InjectionError)
    return error_cls(failure.reason, [failure])


class Injector:
    """Delivers text to the focused window.

    With backend "auto", strategies run in CASCADE_ORDER until one succeeds;
    otherwise only the requested strategy runs. Calls are serialized because
    the clipboard snapshot/restore sequence is not safe against interleaving.
    """

    def __init__(
        self,
        config: InjectorConfig | None = None,
        *,
        runner: ProcessPort | None = None,
        session: SessionProbe | None = None,
        clipboard: ClipboardPort | None = None,
        socket_paths: Sequence[Path] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize injector and its strategies.

        Args:
            config: InjectorConfig with backend, settle delay, timeout, dry_run
            runner: Process runner (defaults to subprocess with config.timeout)
            session: Session detector (defaults to os.environ)
            clipboard: Clipboard port (defaults to the one named by
                config.clipboard, normally the GTK helper)
            socket_paths: ydotoold socket locations to probe
            sleep: Settle delay implementation

        Raises:
            ValueError: If the configured backend or clipboard name is unknown
        """
        self.config = config or InjectorConfig()
        self.backend = InjectBackend.parse(self.config.backend)
        self.dry_run = self.config.dry_run
        self.runner = runner or ProcessRunner(timeout=self.config.timeout)
        self.session = session or SessionProbe()
        if clipboard is None:
            clipboard = make_clipboard_port(self.config.clipboard, self.runner)
        self.clipboard = ClipboardManager(clipboard)
        if socket_paths is None:
            socket_paths = ydotool_socket_paths()

        self.backends: dict[str, Backend] = {
            "clipboard": ClipboardPasteBackend(
                self.runner,
                self.clipboard,
                socket_paths,
                settle_delay=self.config.settle_delay,
                sleep=sleep,
            ),
            "ydotool": YdotoolBackend(self.runner, socket_paths),
            "wtype": WtypeBackend(self.runner, self.session),
            "xdotool": XdotoolBackend(self.runner, self.session),
        }

        self._lock = threading.Lock()
        self._async_lock = asyncio.Lock()

        logger.info(
            "Injector initialized: backend=%s, settle_delay=%.2fs, "
            "timeout=%s, dry_run=%s",
            self.backend.value,
            self.config.settle_delay,
            self.config.timeout,
            self.dry_run,
        )

    @property
    def cascade(self) -> list[Backend]:
        return [self.backends[name] for name in CASCADE_ORDER]

    def _plan(self, backend: InjectBackend) -> list[Backend]:
        if backend is InjectBackend.AUTO:
            return self.cascade
        return [self.backends[backend.value]]

    def inject(self, text: str, backend: InjectBackend | str | None = None) -> None:
        """Inject text into the focused window, blocking until done.

        Args:
            text: Text to inject
            backend: Override the configured backend for this call

        Raises:
            BackendUnavailableError: Requested backend's daemon/session is absent
            CommandNotFoundError: Requested backend's binary is not installed
            CommandFailedError: Requested backend's binary exited non-zero
            TimeoutError: Requested backend's binary exceeded the timeout
            InjectionError: Every cascade strategy failed (auto mode)
            ValueError: If backend is an unknown name
        """
        selected = self.backend if backend is None else InjectBackend.parse(backend)

        if not text:
            logger.debug("Empty text, nothing to inject")
            return

        logger.debug("Injecting text (length=%d, backend=%s)", len(text), selected.value)

        if self.dry_run:
            logger.info(
                "[DRY-RUN] Would inject %d chars via %s",
                len(text),
                " -> ".join(b.name for b in self._plan(selected)),
            )
            return

        with self._lock:
            if selected is InjectBackend.AUTO:
                self._inject_auto(text)
            else:
                self._inject_single(text, self.backends[selected.value])

    async def inject_text(
        self, text: str, backend: InjectBackend | str | None = None
    ) -> None:
        """Async variant of inject() for event-loop hosts.

        Runs the blocking injection in the default executor so the loop keeps
        serving other tasks. Raises the same exceptions as inject().
        """
        async with self._async_lock:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None, functools.partial(self.inject, text, backend)
            )

    def _inject_single(self, text: str, strategy: Backend) -> None:
        failure = strategy.attempt(text)
        if failure is not None:
            logger.debug("%s backend failed: %s", strategy.name, failure)
            raise error_for(failure)
        logger.info("Injected %d chars via %s", len(text), strategy.name)

    def _inject_auto(self, text: str) -> None:
        failures: list[AttemptFailure] = []

        for strategy in self.cascade:
            failure = strategy.attempt(text)
            if failure is None:
                logger.info("Injected %d chars via %s", len(text), strategy.name)
                return

            failures.append(failure)
            if failure.kind is FailureKind.UNAVAILABLE:
                logger.debug("Skipping %s backend: %s", strategy.name, failure)
            else:
                logger.warning(
                    "%s backend failed (%s), trying next", strategy.name, failure
                )

        raise InjectionError(
            "no supported injection backends available ({})".format(
                "; ".join(f.reason for f in failures)
            ),
            failures,
        )


def inject_text(
    text: str,
    backend: InjectBackend | str = InjectBackend.AUTO,
) -> None:
    """Inject text using default system collaborators.

    Convenience wrapper around Injector(...).inject().
    """
    backend = InjectBackend.parse(backend)
    Injector(InjectorConfig(backend=backend.value)).inject(text)
