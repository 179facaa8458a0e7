"""signal state around fork()

Before forking, every signal is blocked so that no handler runs in the
child before it execs, and none interrupts the parent's bookkeeping. The
parent puts its old mask back right after fork() returns. The child resets
all dispositions to the default and then unblocks everything.

pthread_sigmask() only touches the calling thread, which is the one thread
fork() copies into the child.

>>> from signal import pthread_sigmask, SIG_BLOCK, SIGUSR1
>>> with masked() as saved:
...     SIGUSR1 in pthread_sigmask(SIG_BLOCK, ())
...
True
>>> SIGUSR1 in pthread_sigmask(SIG_BLOCK, ())
False
"""

__all__ = (
    'block_all', 'restore', 'reset_handlers', 'unblock_all', 'masked',
    'retry_eintr',
)

import os
import logging
from contextlib import contextmanager
from threading import Lock
from signal import (
    SIGKILL, SIGSTOP, SIG_DFL, SIG_SETMASK, SIG_UNBLOCK,
    pthread_sigmask, valid_signals, signal,
)
from .errors import SignalMaskError

logger = logging.getLogger(__name__)


def retry_eintr(func, *args):
    """call func(*args) until it is not interrupted by a signal

    >>> retry_eintr(int, '7')
    7
    """
    while True:
        try:
            return func(*args)
        except InterruptedError:
            continue


def block_all():
    """block every signal, returning the mask that was in place before"""
    try:
        return pthread_sigmask(SIG_SETMASK, valid_signals())
    except OSError as e:
        raise SignalMaskError('sigmask', e.errno, e.strerror) from e


def restore(saved):
    """put back a mask returned by block_all()

    If that fails, nothing can be trusted about signal delivery in this
    process anymore, so it aborts.
    """
    try:
        pthread_sigmask(SIG_SETMASK, saved)
    except (OSError, ValueError):
        logger.critical('unable to restore signal mask, aborting')
        os.abort()


def reset_handlers():
    """set every catchable signal back to SIG_DFL

    Meant for the child between fork() and exec(). Python itself ignores
    SIGPIPE and SIGXFSZ, which exec'd programs should not inherit.
    """
    for sig in sorted(valid_signals() - { SIGKILL, SIGSTOP }):
        signal(sig, SIG_DFL)


def unblock_all():
    pthread_sigmask(SIG_UNBLOCK, valid_signals())


@contextmanager
def masked():
    """block all signals for the duration of the block, one thread at a time

    Forks happen inside this block. Concurrent spawns are serialized here so
    that one thread's saved mask is never another thread's blocked one.
    """
    with masked.lock:
        saved = block_all()
        try:
            yield saved
        finally:
            restore(saved)
masked.lock = Lock()  # noqa: E305
