__all__ = (
    'Process', 'CLOSE_SIGNALS',
    'get_signal', 'get_close_signal', 'change_default_close_signal',
)

import os
import logging
from signal import Signals, SIGKILL, SIGTERM, SIGINT, SIGHUP
from errno import EINVAL
from . import posix_wait
from .errors import InvalidArgument, ProcessError
from .sigmask import retry_eintr

logger = logging.getLogger(__name__)

CLOSE_SIGNALS = SIGKILL, SIGTERM, SIGINT, SIGHUP


def get_signal(sig: Signals | int | str) -> Signals:
    """look up a signal by name or number

    names are case insensitive, with or without the 'SIG' prefix

    >>> get_signal('term'), get_signal('SIGKILL'), get_signal(2)
    (<Signals.SIGTERM: 15>, <Signals.SIGKILL: 9>, <Signals.SIGINT: 2>)
    >>> try: get_signal('SIGNOPE')
    ... except InvalidArgument as e: print(e)
    ...
    invalid signal: 'SIGNOPE'
    """
    try:
        if isinstance(sig, str):
            sig = sig.upper()
            return Signals[sig if sig.startswith('SIG') else f'SIG{sig}']
        return Signals(sig)
    except (KeyError, ValueError) as e:
        raise InvalidArgument(f'invalid signal: {repr(sig)}') from e


def get_close_signal(sig: Signals | int | str | None = None) -> Signals:
    """validate a signal to be sent when a process is closed or discarded

    None means the default, SIGTERM unless changed with
    change_default_close_signal() or the PYREAP_CLOSE_SIGNAL variable.

    >>> get_close_signal('kill')
    <Signals.SIGKILL: 9>
    >>> try: get_close_signal('SIGSTOP')
    ... except InvalidArgument as e: print(e)
    ...
    invalid close signal: SIGSTOP
    """
    if sig is None:
        return get_close_signal.default
    sig = get_signal(sig)
    if sig not in CLOSE_SIGNALS:
        raise InvalidArgument(f'invalid close signal: {sig.name}')
    return sig


get_close_signal.default = get_close_signal(os.environ.get('PYREAP_CLOSE_SIGNAL', SIGTERM))


def change_default_close_signal(sig: Signals | int | str) -> Signals:
    """change the close signal used when spawn() is not given one

    >>> old = change_default_close_signal('SIGKILL')
    >>> get_close_signal()
    <Signals.SIGKILL: 9>
    >>> change_default_close_signal(old)
    <Signals.SIGKILL: 9>
    """
    old = get_close_signal.default
    get_close_signal.default = get_close_signal(sig)
    return old


class Process:
    r"""handle on a child process

    Usually made by spawn() or fork(). The exit code is collected once and
    cached; after that, waiting returns it again and signals are not sent.

    >>> from pyreap import spawn
    >>> p = spawn(['sleep', '10'])
    >>> p.exit_code is None
    True
    >>> p.signal('SIGKILL')
    >>> p.wait()
    129
    >>> p.wait()
    129
    >>> p.signal('SIGKILL')
    >>> p.exit_code
    129

    Closing sends the close signal and reaps the child, and so does leaving a
    `with` block or dropping the last reference to a running handle:

    >>> with spawn(['sleep', '10']) as p:
    ...     pid = p.pid
    ...
    >>> p.exit_code
    129
    >>> p = spawn(['sleep', '10']); pid = p.pid; del p
    >>> try: os.kill(pid, 0)
    ... except ProcessLookupError: 'reaped'
    ...
    'reaped'

    A handle with no process behind it ignores signals and cannot be waited
    on:

    >>> p = Process(-1)
    >>> p.pid, p.exit_code, p.signal('SIGTERM'), p.close()
    (None, None, None, None)
    >>> try: p.wait()
    ... except ProcessError as e: print(e)
    ...
    wait: [Errno 22] no process to wait for

    Neither does a handle inherited through fork(), in the child:

    >>> from pyreap import fork
    >>> p = spawn(['sleep', '10'])
    >>> child = fork()
    >>> if child is None:
    ...     try: p.wait()
    ...     except ProcessError: os._exit(0 if (p.pid, p.exit_code, p.signal('SIGKILL')) == (None, None, None) else 2)
    ...     os._exit(3)
    >>> child.wait(), p.exit_code is None
    (0, True)
    >>> p.close()

    Without blocking, wait() tells a running process (None) from one that
    exited, even with 0:

    >>> import time
    >>> p = spawn(['sleep', '10'])
    >>> p.wait(blocking=False) is None
    True
    >>> p.close()
    >>> p = spawn(['true'])
    >>> while p.wait(blocking=False) is None:
    ...     time.sleep(0.01)
    ...
    >>> p.wait(blocking=False)
    0

    If the finalizer cannot reap its process, it logs the error rather than
    raising it:

    >>> import io
    >>> stream = io.StringIO(); handler = logging.StreamHandler(stream)
    >>> logger.addHandler(handler)
    >>> p = spawn(['true']); _ = os.waitpid(p.pid, 0)
    >>> del p
    >>> stream.getvalue()  # doctest: +ELLIPSIS
    'unable to reap discarded process ...: signal: [Errno 3] No such process\n'
    >>> logger.removeHandler(handler)
    """
    def __init__(self, pid, close_signal: Signals | int | str | None = None):
        """wrap a pid

        pid:          a child of this process, or -1 for none
        close_signal: sent by close(); see get_close_signal()
        """
        close_signal = get_close_signal(close_signal)
        self._exit_code = None
        self._pid = pid
        self._owner = os.getpid()
        self.close_signal = close_signal

    @property
    def pid(self):
        """the pid, or None for a handle with no process of ours behind it"""
        return self._pid if self.live else None

    @property
    def exited(self):
        """whether the exit code has been collected"""
        return self._exit_code is not None

    @property
    def owned(self):
        """whether this process created the handle

        A forked child holds copies of its parent's handles; it must not
        close them.
        """
        return self._owner == os.getpid()

    @property
    def live(self):
        """whether there is a pid behind the handle that this process may use"""
        return self._pid != -1 and self.owned

    @property
    def exit_code(self):
        """the exit code, or None while the process is running"""
        if self._exit_code is None and not self.live:
            return None
        return self.wait(blocking=False)

    def wait(self, blocking=True):
        """wait for the process to exit and return its exit code

        If blocking is False and the process is still running, returns
        None instead. Once collected, the exit code is returned again by
        every later call without asking the OS.

        An exit code of 1 may also mean the child could not be set up or
        could not exec its command.
        """
        if self._exit_code is not None:
            return self._exit_code
        if not self.live:
            raise ProcessError('wait', EINVAL, 'no process to wait for')
        try:
            self._exit_code = posix_wait.wait(self._pid, blocking)
        except OSError as e:
            raise ProcessError('wait', e.errno, e.strerror) from e
        return self._exit_code

    def signal(self, sig: Signals | int | str):
        """send sig to the process

        sig can be an integer or the signal name, case insensitive, with or
        without the 'SIG' prefix

        Does nothing if the process has already been waited on.
        """
        sig = get_signal(sig)
        if self._exit_code is not None or not self.live:
            return
        try:
            retry_eintr(os.kill, self._pid, sig)
        except OSError as e:
            raise ProcessError('signal', e.errno, e.strerror) from e

    def close(self):
        """send the close signal and wait for the process to exit

        Safe to call more than once.
        """
        if self._exit_code is not None or not self.live:
            return
        self.signal(self.close_signal)
        self.wait()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        self.close()

    def __del__(self):
        if getattr(self, '_exit_code', 0) is not None or not self.live:
            return
        logger.debug('reaping discarded process %d with %s', self._pid, self.close_signal.name)
        try:
            self.close()
        except ProcessError as e:
            logger.error('unable to reap discarded process %d: %s', self._pid, e)

    def __repr__(self):
        return f'{type(self).__name__}(pid={self.pid}, close_signal={self.close_signal.name})'
