"""Blocking execution of external helper programs."""

import logging
import subprocess
from typing import Protocol, Sequence

from injection_app._types import AttemptFailure, FailureKind, ProcessResult

logger = logging.getLogger(__name__)


class ProcessPort(Protocol):
    """Anything able to spawn a program and wait for it."""

    def run(
        self,
        args: Sequence[str],
        *,
        input: bytes | None = None,
        capture: bool = True,
    ) -> ProcessResult: ...


def describe_command(args: Sequence[str]) -> str:
    """Render argv for logs with the literal payload after ``--`` redacted."""
    args = list(args)
    if "--" in args:
        split = args.index("--") + 1
        payload = " ".join(args[split:])
        return " ".join(args[:split] + [f"<{len(payload)} chars>"])
    return " ".join(args)


class ProcessRunner:
    """Runs external programs synchronously via subprocess.

    Launch failures propagate as the OSError raised by subprocess
    (FileNotFoundError for a missing binary). With a timeout configured,
    subprocess.TimeoutExpired propagates as well.
    """

    def __init__(self, timeout: float | None = None):
        """Initialize runner.

        Args:
            timeout: Seconds to wait for each command, None waits forever
        """
        self.timeout = timeout

    def run(
        self,
        args: Sequence[str],
        *,
        input: bytes | None = None,
        capture: bool = True,
    ) -> ProcessResult:
        """Execute a command and wait for it to exit.

        Args:
            args: Program and arguments
            input: Bytes written to the child's stdin
            capture: Collect stdout/stderr. Disable for programs that fork a
                background server holding the pipes open (wl-copy).

        Returns:
            ProcessResult with exit status and captured output

        Raises:
            FileNotFoundError: If the program is not installed
            OSError: If the program could not be launched
            subprocess.TimeoutExpired: If the configured timeout elapsed
        """
        cmd = list(args)
        logger.debug("Executing: %s", describe_command(cmd))

        output = subprocess.PIPE if capture else subprocess.DEVNULL
        result = subprocess.run(
            cmd,
            input=input,
            stdin=None if input is not None else subprocess.DEVNULL,
            stdout=output,
            stderr=output,
            timeout=self.timeout,
        )

        logger.debug("%s exited with status %d", cmd[0], result.returncode)
        return ProcessResult(
            args=cmd,
            returncode=result.returncode,
            stdout=result.stdout or b"",
            stderr=result.stderr or b"",
        )


def run_command(
    runner: ProcessPort,
    program: str,
    args: Sequence[str],
    install_hint: str,
) -> AttemptFailure | None:
    """Run a helper program and translate the result into an attempt outcome.

    Args:
        runner: Process runner used to spawn the program
        program: Binary name
        args: Arguments following the binary name
        install_hint: Install guidance appended when the binary is missing

    Returns:
        None on success, otherwise the failure with a descriptive reason
    """
    try:
        result = runner.run([program, *args])
    except FileNotFoundError:
        return AttemptFailure(
            FailureKind.LAUNCH_FAILED, f"{program} not found; {install_hint}"
        )
    except subprocess.TimeoutExpired as e:
        return AttemptFailure(
            FailureKind.TIMED_OUT, f"{program} timed out after {e.timeout}s"
        )
    except OSError as e:
        return AttemptFailure(
            FailureKind.LAUNCH_FAILED, f"failed to run {program}: {e}"
        )

    if result.ok:
        return None

    reason = f"{program} exited with status {result.returncode}"
    stderr = result.stderr.decode("utf-8", errors="replace").strip()
    if stderr:
        reason = f"{reason} | stderr: {stderr}"
    return AttemptFailure(FailureKind.EXECUTION_FAILED, reason)
