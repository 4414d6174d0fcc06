"""Run a local executable in the foreground with inherited stdio."""

from __future__ import annotations

import logging
import signal
import subprocess
import threading
from collections.abc import Callable, Mapping, Sequence

from ..errors import SubprocessLaunchError

logger = logging.getLogger(__name__)

Executor = Callable[[str, Sequence[str], Mapping[str, str]], int]

_FORWARDED_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGTERM", "SIGHUP")
    if hasattr(signal, name)
)


def execute(path: str, args: Sequence[str], env: Mapping[str, str]) -> int:
    """Run ``path`` with ``args`` and ``env`` and wait for it to exit.

    The child shares this process's stdin, stdout and stderr. While it runs,
    SIGTERM and SIGHUP delivered to this process are passed on to the child
    instead of interrupting us. SIGINT is ignored here: a terminal Ctrl-C
    already goes to the whole foreground process group, so ``docker`` sees it
    once and we still get to clean up after it. No timeout is applied.

    Args:
        path: Absolute path of the executable.
        args: Arguments, not including the program name.
        env: Complete environment for the child.

    Returns:
        The child's exit status, or ``128 + N`` if it was killed by signal N.

    Raises:
        SubprocessLaunchError: If the executable could not be started.
    """
    try:
        proc = subprocess.Popen([path, *args], env=dict(env))
    except OSError as e:
        raise SubprocessLaunchError(f"Failed to start {path}: {e}") from e

    logger.debug("Started %s (pid %d)", path, proc.pid)

    def _forward(signum: int, frame: object) -> None:
        logger.debug("Forwarding signal %d to pid %d", signum, proc.pid)
        if proc.poll() is None:
            proc.send_signal(signum)

    # signal.signal only works from the main thread
    previous: dict[int, object] = {}
    if threading.current_thread() is threading.main_thread():
        for sig in _FORWARDED_SIGNALS:
            previous[sig] = signal.signal(sig, _forward)
        # installed after Popen so the child keeps the default SIGINT action
        previous[signal.SIGINT] = signal.signal(signal.SIGINT, signal.SIG_IGN)

    try:
        returncode = proc.wait()
    finally:
        for sig, handler in previous.items():
            # None means the handler was installed outside Python
            signal.signal(sig, signal.SIG_DFL if handler is None else handler)

    logger.debug("%s exited with status %d", path, returncode)
    if returncode < 0:
        return 128 - returncode
    return returncode
