"""descriptor redirection for a child process

Redirects are (destination, source) pairs. plan() validates them in the
parent and resolves both sides to descriptor numbers; apply() runs in the
child and duplicates each source onto its destination, in order.

Either side can be an int, an FD or anything with a fileno() method. Only an
FD (or another object with a true `closeable` attribute) is closed in the
child after being duplicated; plain integers are never closed.

>>> from pyreap.fd import FD
>>> r, w = os.pipe()
>>> plan([ (1, FD(w)), (2, 1) ])  # doctest: +ELLIPSIS
(RedirectPair(dst=1, src=..., closeable=True), RedirectPair(dst=2, src=1, closeable=False))

Mappings work too, in iteration order:

>>> plan({ 1: w })[0].closeable
False

Both sides must be open when spawning:

>>> os.close(r); os.close(w)
>>> try: plan([ (1, w) ])  # doctest: +ELLIPSIS
... except InvalidArgument as e: print(e)
...
redirect source is not an open descriptor: ...

Whatever goes wrong while applying them in the child ends it with exit code
1. Here the first pair closes the pipe's write end, so the second has
nothing left to duplicate:

>>> from pyreap import spawn, Pipe
>>> devnull = os.open(os.devnull, os.O_WRONLY)
>>> pipe = Pipe()
>>> spawn(['true'], redirects=[ (2, devnull), (1, pipe.write_fd), (devnull, pipe.write_fd) ]).wait()
1
>>> pipe.close(); os.close(devnull)
"""

__all__ = 'RedirectPair', 'plan', 'apply'

import os
from collections import namedtuple
from collections.abc import Mapping
from errno import EBADF
from .errors import InvalidArgument
from .sigmask import retry_eintr

RedirectPair = namedtuple('RedirectPair', 'dst src closeable')


def get_fd(stream):
    if isinstance(stream, bool):
        raise InvalidArgument(f'not a file descriptor: {repr(stream)}')
    if isinstance(stream, int):
        fd = stream
    elif callable(getattr(stream, 'fileno', None)):
        try:
            fd = stream.fileno()
        except (OSError, ValueError) as e:
            raise InvalidArgument(f'{repr(stream)} has no file descriptor') from e
    else:
        raise InvalidArgument(f'not a file descriptor: {repr(stream)}')
    if fd < 0:
        raise InvalidArgument(f'not a file descriptor: {repr(stream)}')
    return fd


def is_open(fd):
    try:
        os.fstat(fd)
    except OSError as e:
        if e.errno != EBADF:
            raise
        return False
    return True


def get_pairs(redirects):
    if isinstance(redirects, Mapping):
        return list(redirects.items())
    if isinstance(redirects, (str, bytes)) or not hasattr(redirects, '__iter__'):
        raise InvalidArgument('redirects must be a sequence of pairs or a mapping')
    pairs = []
    for redirect in redirects:
        if isinstance(redirect, (str, bytes)) or not isinstance(redirect, (tuple, list)):
            raise InvalidArgument('redirects must be tuples or lists')
        if len(redirect) != 2:
            raise InvalidArgument('redirects must be two elements')
        pairs.append(redirect)
    return pairs


def plan(redirects):
    """validate redirects and resolve them to a tuple of RedirectPairs

    Raises InvalidArgument unless every pair names two open descriptors.
    """
    planned = []
    for dst, src in get_pairs(redirects):
        fds = []
        for name, stream in ('destination', dst), ('source', src):
            fd = get_fd(stream)
            if not is_open(fd):
                raise InvalidArgument(f'redirect {name} is not an open descriptor: {repr(stream)}')
            fds.append(fd)
        planned.append(RedirectPair(*fds, bool(getattr(src, 'closeable', False))))
    return tuple(planned)


def apply(pairs):
    """duplicate each source onto its destination

    Only meant to run in a forked child. Errors propagate as OSError; a
    source closed by an earlier pair fails with EBADF.
    """
    for dst, src, closeable in pairs:
        if dst == src:
            os.set_inheritable(dst, True)
            continue
        retry_eintr(os.dup2, src, dst)
        if closeable:
            retry_eintr(os.close, src)
