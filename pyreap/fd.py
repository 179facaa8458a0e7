"""file descriptors and what survives exec()

FD is the thin wrapper used for redirect sources. The rest of the module
lists the descriptors a process has open and marks them close-on-exec, so
that only the standard streams and explicit redirects reach an exec'd
program.

>>> r, w = os.pipe()
>>> os.set_inheritable(r, True); os.set_inheritable(w, True)
>>> ensure_closed_on_exec(keep={ r })
>>> FD(w).cloexec, FD(r).cloexec
(True, False)
>>> os.close(r); os.close(w)
"""

__all__ = 'FD', 'LOW_FD', 'lsof_iter', 'lsof', 'ensure_closed_on_exec'

import os
import fcntl
from errno import EBADF
from pathlib import Path

LOW_FD = 3


class FD:
    """file descriptor wrapper

    A glorified integer with a close() method and a closeable flag, which
    tells a spawned child whether it may close this descriptor once it has
    been duplicated onto its destination.

    >>> from os import pipe
    >>> r, w = pipe()
    >>> rfd, wfd = FD(r, 'r'), FD(w, 'w')
    >>> with wfd.open() as file: file.write('test')
    ...
    4
    >>> with rfd.open() as file: file.read()
    ...
    'test'
    >>> rfd.closed
    True
    >>> FD(1).closeable, wfd.closeable
    (False, True)
    """
    def __init__(self, fd, mode='r', closeable=None):
        """closeable defaults to False for the standard streams, True otherwise"""
        self.fd = int(fd)
        self.mode = mode
        self.closeable = self.fd >= LOW_FD if closeable is None else closeable

    def fileno(self):
        return self.fd

    def open(self):
        return open(self.fd, self.mode)

    def close(self, invalid_ok=True):
        try:
            os.close(self.fd)
        except OSError as e:
            if not invalid_ok or e.errno != EBADF:
                raise

    def dup(self):
        """duplicate the descriptor into a new, closeable FD

        >>> fd = FD(2).dup()
        >>> fd.fd > 2, fd.closeable, fd.cloexec
        (True, True, True)
        >>> fd.close()
        """
        return type(self)(os.dup(self.fd), self.mode)

    @property
    def closed(self):
        try:
            os.fstat(self.fd)
        except OSError as e:
            if e.errno != EBADF:
                raise
            return True
        else:
            return False

    @property
    def cloexec(self):
        """whether the descriptor is closed by exec()"""
        return bool(fcntl.fcntl(self.fd, fcntl.F_GETFD) & fcntl.FD_CLOEXEC)

    @cloexec.setter
    def cloexec(self, value):
        flags = fcntl.fcntl(self.fd, fcntl.F_GETFD)
        flags = flags | fcntl.FD_CLOEXEC if value else flags & ~fcntl.FD_CLOEXEC
        fcntl.fcntl(self.fd, fcntl.F_SETFD, flags)

    def __repr__(self):
        return f'{type(self).__name__}({self.fd}, {repr(self.mode)})'

    def __int__(self):
        return self.fd


def fd_dir(pid=None):
    """where the open descriptors of pid are listed"""
    if pid is None:
        proc = Path('/', 'proc', 'self', 'fd')
        return proc if proc.is_dir() else Path('/', 'dev', 'fd')
    return Path('/', 'proc', str(pid), 'fd')


def lsof_iter(pid=None, return_targets=False):
    """list open file descriptors

    if return_targets is True, yields (fd, target) tuples
    otherwise, only yields the file descriptors

    The listing itself briefly holds a descriptor of its own, which may show
    up in the results.

    >>> 2 in lsof_iter()
    True
    """
    fds = sorted(fd_dir(pid).iterdir(), key=lambda path: int(path.name))
    return (
        (int(fd.name), fd.resolve()) if return_targets else int(fd.name)
        for fd in fds
    )


def lsof(pid=None):
    """list open file descriptors

    returns a dict of the form {fd: target}
    """
    return dict(lsof_iter(pid, return_targets=True))


def ensure_closed_on_exec(lowfd=LOW_FD, keep=()):
    """mark every open descriptor >= lowfd close-on-exec, except those in keep

    This runs in a freshly forked child just before exec(). A failure to
    list the descriptors propagates; the child must not exec in that case.
    """
    for fd in list(lsof_iter()):
        if fd < lowfd or fd in keep:
            continue
        try:
            FD(fd).cloexec = True
        except OSError as e:
            # the listing's own descriptor is gone by now
            if e.errno != EBADF:
                raise
