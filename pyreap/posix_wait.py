"""collect and decode child exit statuses

A child that exits normally reports its own status, 0 to 255. A child
killed by a signal reports SIGNALED (129), whichever signal it was; the
signal number is lost, and an explicit exit(129) looks the same.

>>> exit_code(7 << 8)
7
>>> import signal
>>> exit_code(signal.SIGKILL), exit_code(signal.SIGTERM)
(129, 129)
"""

__all__ = 'SIGNALED', 'exit_code', 'wait'

import os
from .sigmask import retry_eintr

SIGNALED = 129


def exit_code(status):
    """turn a raw waitpid() status into an exit code

    >>> exit_code(0x137f)  # stopped by SIGSTOP
    Traceback (most recent call last):
      ...
    RuntimeError: weird exit status: 0x137f
    """
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status)
    if os.WIFSIGNALED(status):
        return SIGNALED
    raise RuntimeError(f'weird exit status: {hex(status)}')


def wait(pid, blocking=True):
    """wait on a pid to complete and return its exit code

    With blocking=False, returns None if the child is still running.

    >>> pid = os.fork()
    >>> if not pid:
    ...     os._exit(3)
    >>> wait(pid)
    3
    """
    pid_, status = retry_eintr(os.waitpid, pid, 0 if blocking else os.WNOHANG)
    if pid_ == 0 and not blocking:
        return None
    if pid_ != pid:
        raise RuntimeError(f'pid is {pid_}, expected {pid}')
    return exit_code(status)
