"""Command launchers — how a stage's external command is actually started.

The runner only ever talks to :class:`CommandLauncher`, so tests can swap in
a recorder and never spawn a process.  :class:`SubprocessLauncher` is the
real backend.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
import signal
import subprocess
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator

from preflight.config import settings
from preflight.pipeline.errors import InterruptedFailure, LaunchFailure
from preflight.pipeline.models import Stage

logger = logging.getLogger(__name__)

# Signals that cancel a run on top of SIGINT (which Python already turns
# into KeyboardInterrupt).
TERMINATION_SIGNALS: tuple[signal.Signals, ...] = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


class TerminationRequested(BaseException):
    """Raised from the signal handler when the runner is asked to stop."""

    def __init__(self, signum: int) -> None:
        super().__init__(signum)
        self.signum = signum


def _raise_termination(signum: int, frame: object) -> None:
    raise TerminationRequested(signum)


@contextlib.contextmanager
def termination_signals_raise() -> Iterator[None]:
    """Turn SIGTERM / SIGHUP into :class:`TerminationRequested` for the block.

    Handlers can only be installed from the main thread; elsewhere this is a
    no-op and the default dispositions stay in place.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {sig: signal.signal(sig, _raise_termination) for sig in TERMINATION_SIGNALS}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


@contextlib.contextmanager
def _signals_handled_by(handler: Callable[[int, object], None]) -> Iterator[None]:
    """Route SIGINT and the termination signals to *handler* for the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    signals = (signal.SIGINT, *TERMINATION_SIGNALS)
    previous = {sig: signal.signal(sig, handler) for sig in signals}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


class CommandLauncher(ABC):
    """Backend-agnostic way of running one stage to completion."""

    @abstractmethod
    def launch(self, stage: Stage) -> int:
        """Run *stage*'s command and block until it exits.

        Returns
        -------
        int
            The command's exit status.

        Raises
        ------
        LaunchFailure
            The command is empty, cannot be found, or cannot be started.
        InterruptedFailure
            The runner was signalled while the command was running.
        """
        ...


class SubprocessLauncher(CommandLauncher):
    """Run commands as child processes sharing this process's std streams.

    Parameters
    ----------
    terminate_grace_seconds:
        How long an interrupted child gets between SIGTERM and SIGKILL.
        Defaults to ``settings.terminate_grace_seconds``.
    cwd:
        Working directory for the children.  ``None`` keeps the current one.
    """

    def __init__(
        self,
        *,
        terminate_grace_seconds: float | None = None,
        cwd: str | None = None,
    ) -> None:
        if terminate_grace_seconds is None:
            terminate_grace_seconds = settings.terminate_grace_seconds
        self.terminate_grace_seconds = terminate_grace_seconds
        self.cwd = cwd

    def resolve(self, stage: Stage) -> str:
        """Return the executable path for *stage* or raise :class:`LaunchFailure`."""
        if not stage.command.strip():
            raise LaunchFailure(stage, "empty command")
        executable = shutil.which(stage.command)
        if executable is None:
            raise LaunchFailure(stage, "command not found or not executable")
        return executable

    def launch(self, stage: Stage) -> int:
        executable = self.resolve(stage)
        proc: subprocess.Popen | None = None
        try:
            # No stdio redirection: tool output goes straight to the terminal.
            proc = subprocess.Popen([executable, *stage.arguments], cwd=self.cwd)
            return proc.wait()
        except OSError as exc:
            if proc is not None:
                raise
            raise LaunchFailure(stage, exc.strerror or str(exc)) from exc
        except KeyboardInterrupt:
            signum = signal.SIGINT
        except TerminationRequested as exc:
            signum = exc.signum

        if proc is not None:
            self._terminate(proc, stage)
        raise InterruptedFailure(stage, signum)

    # -- internals ------------------------------------------------------------

    def _terminate(self, proc: subprocess.Popen, stage: Stage) -> None:
        """Stop *proc* and reap it.

        A further SIGINT / SIGTERM / SIGHUP while waiting out the grace
        period kills the child at once instead of aborting the cleanup.
        """
        if proc.poll() is not None:
            return
        logger.warning("Terminating %s (pid %d)", stage.name, proc.pid)

        def _kill_now(signum: int, frame: object) -> None:
            logger.warning("Received signal %d during shutdown, killing %s", signum, stage.name)
            proc.kill()

        with _signals_handled_by(_kill_now):
            try:
                proc.terminate()
                try:
                    proc.wait(timeout=self.terminate_grace_seconds)
                except subprocess.TimeoutExpired:
                    logger.warning(
                        "%s did not exit within %.1fs, killing it",
                        stage.name,
                        self.terminate_grace_seconds,
                    )
                    proc.kill()
                    proc.wait()
            except BaseException:
                proc.kill()
                proc.wait()
                raise
