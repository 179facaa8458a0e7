r"""spawning processes with os.fork and os.exec

It only contains two functions, spawn() and fork()

spawn() checks and copies everything the child needs before forking, with
all signals blocked around the fork. The child resets its signal handling,
applies the redirects, marks every other descriptor from 3 up
close-on-exec, changes directory and execs. Anything that goes wrong in the
child is reported on its standard error and turns into exit code 1; the
parent only ever sees that exit code.

>>> devnull = os.open(os.devnull, os.O_WRONLY)
>>> spawn(['true']).wait(), spawn(['false']).wait()
(0, 1)
>>> spawn('sh -c "exit 42"').wait()
42
>>> spawn(['sh', '-c', 'kill -KILL $$']).wait()
129
>>> spawn(['no-such-command-anywhere'], redirects={ 2: devnull }).wait()
1

Redirects are applied in order, so a later pair sees what an earlier one
did to a descriptor:

>>> from pyreap import Pipe, FD
>>> pipe = Pipe()
>>> p = spawn(['sh', '-c', 'echo out; echo err >&2'], redirects=[ (1, pipe.write_fd), (2, 1) ])
>>> pipe.write_fd.close(); pipe.read()
b'out\nerr\n'
>>> p.wait()
0

An FD for one of the standard streams is not closed after duplicating it:

>>> pipe = Pipe()
>>> p = spawn(['sh', '-c', 'echo out; echo err >&2'], redirects=[ (1, pipe.write_fd), (2, FD(1)) ])
>>> pipe.write_fd.close(); pipe.read(), p.wait()
(b'out\nerr\n', 0)

A pipe written to before spawning can feed the child's standard input:

>>> stdin, stdout = Pipe(), Pipe()
>>> stdin.write(b'fed\n')
4
>>> p = spawn(['cat'], redirects={ 0: stdin.read_fd, 1: stdout.write_fd })
>>> stdin.read_fd.close(); stdout.write_fd.close(); stdout.read(), p.wait()
(b'fed\n', 0)

The environment, when given, replaces the parent's entirely:

>>> pipe = Pipe()
>>> os.environ['PYREAP_PARENT_ONLY'] = 'yes'
>>> p = spawn(['sh', '-c', 'echo "$X:$PYREAP_PARENT_ONLY"'], env=dict(X='1'), redirects={ 1: pipe.write_fd })
>>> del os.environ['PYREAP_PARENT_ONLY']
>>> pipe.write_fd.close(); pipe.read()
b'1:\n'
>>> pipe = Pipe()
>>> p = spawn(['pwd'], cwd='/', redirects={ 1: pipe.write_fd })
>>> pipe.write_fd.close(); pipe.read(), p.wait()
(b'/\n', 0)
>>> spawn(['true'], cwd='/no/such/directory', redirects={ 2: devnull }).wait()
1

Only the standard streams and the redirects survive into the new program,
even if the parent left other descriptors inheritable:

>>> import sys
>>> extra = os.open(os.devnull, os.O_RDONLY); os.set_inheritable(extra, True)
>>> probe = [ sys.executable, '-c', f'import os, sys; os.fstat({extra})' ]
>>> spawn(probe, redirects={ 2: devnull }).wait()
1
>>> spawn(probe, redirects=[ (extra, extra) ]).wait()
0
>>> os.close(extra); os.close(devnull)

Bad arguments are rejected before anything is forked:

>>> for kwargs in dict(env={ 'X': 1 }), dict(env={ 'X': 'a\0b' }), dict(close_signal='SIGUSR1'), dict(redirects=[ (1,) ]), dict(redirects=None):
...     try: spawn(['true'], **kwargs)
...     except InvalidArgument as e: print(e)
...
environment value for 'X' is not a string
environment values cannot contain NUL: 'X'
invalid close signal: SIGUSR1
redirects must be two elements
redirects must be a sequence of pairs or a mapping

Spawning from several threads at once is fine; forks are serialized:

>>> from concurrent.futures import ThreadPoolExecutor
>>> with ThreadPoolExecutor(4) as pool:
...     handles = list(pool.map(lambda n: spawn(['sh', '-c', f'exit {n}']), range(8)))
...
>>> [ p.wait() for p in handles ]
[0, 1, 2, 3, 4, 5, 6, 7]
"""

__all__ = 'spawn', 'fork'

import os
import logging
from collections.abc import Mapping
from shlex import split
from . import redirect, sigmask
from .errors import InvalidArgument, ForkError
from .fd import LOW_FD, ensure_closed_on_exec
from .process import Process, get_close_signal

logger = logging.getLogger(__name__)


def encode(value, what):
    try:
        value = os.fsencode(value)
    except TypeError as e:
        raise InvalidArgument(f'{what} is not a string: {repr(value)}') from e
    if b'\0' in value:
        raise InvalidArgument(f'{what} cannot contain NUL: {repr(value)}')
    return value


def encode_env(env):
    if not isinstance(env, Mapping):
        raise InvalidArgument(f'environment is not a mapping: {type(env).__name__}')
    encoded = {}
    for key, value in env.items():
        if not isinstance(key, str):
            raise InvalidArgument(f'environment key is not a string: {repr(key)}')
        if not isinstance(value, str):
            raise InvalidArgument(f'environment value for {repr(key)} is not a string')
        if '\0' in key:
            raise InvalidArgument(f'environment keys cannot contain NUL: {repr(key)}')
        if '\0' in value:
            raise InvalidArgument(f'environment values cannot contain NUL: {repr(key)}')
        if not key or '=' in key:
            raise InvalidArgument(f'illegal environment variable name: {repr(key)}')
        encoded[os.fsencode(key)] = os.fsencode(value)
    return encoded


def fail(what, error):
    """report a child setup failure on stderr and leave"""
    try:
        os.write(2, f'{what}: {error}\n'.encode(errors='replace'))
    finally:
        os._exit(1)


def child(command, argv, pairs, env, cwd):
    """set up a freshly forked child and exec; never returns"""
    try:
        sigmask.reset_handlers()
        sigmask.unblock_all()
    except (OSError, ValueError) as e:
        fail('child unable to reset signal handling', e)
    try:
        redirect.apply(pairs)
    except OSError as e:
        fail('redirect', e.strerror)
    try:
        ensure_closed_on_exec(LOW_FD, keep={ pair.dst for pair in pairs })
    except OSError as e:
        fail('unable to ensure fds will close', e.strerror)
    if cwd is not None:
        try:
            os.chdir(cwd)
        except OSError as e:
            fail('chdir', e.strerror)
    try:
        if env is None:
            os.execvp(command, argv)
        else:
            os.execvpe(command, argv, env)
    except OSError as e:
        fail(f'exec {os.fsdecode(command)} failed', e.strerror)


def spawn(argv, *, command=None, close_signal=None, redirects=(), env=None, cwd=None):
    """spawn a process and return a Process for it

    argv:         arguments to the process; run through shlex.split() if a str
    command:      the program to run, argv[0] by default; searched for in PATH
    close_signal: sent when the Process is closed or discarded; one of
                  SIGKILL, SIGTERM, SIGINT or SIGHUP, defaulting to SIGTERM
    redirects:    (child_fd, stream) pairs, or { child_fd: stream, ... }
                  streams are ints, FDs or anything with a fileno() method
    env:          str to str mapping replacing os.environ in the child
    cwd:          working directory of the child
    """
    if isinstance(argv, str):
        argv = split(argv)
    if isinstance(argv, (bytes, Mapping)) or not hasattr(argv, '__iter__'):
        raise InvalidArgument(f'argv must be a sequence of strings: {repr(argv)}')
    argv = tuple(encode(arg, 'argument') for arg in argv)
    if not argv or not argv[0]:
        raise InvalidArgument('argv and its first element must not be empty')
    command = argv[0] if command is None else encode(command, 'command')
    close_signal = get_close_signal(close_signal)
    pairs = redirect.plan(redirects)
    if env is not None:
        env = encode_env(env)
    if cwd is not None:
        cwd = encode(cwd, 'working directory')

    with sigmask.masked():
        try:
            pid = os.fork()
        except OSError as e:
            raise ForkError('fork', e.errno, e.strerror) from e
        if pid == 0:
            try:
                child(command, argv, pairs, env, cwd)
            finally:
                os._exit(1)

    logger.debug('spawned %d: %s', pid, argv)
    return Process(pid, close_signal)


def fork(close_signal=None):
    """fork, returning a Process in the parent and None in the child

    The child carries on running Python. It should end with os._exit() or
    by exec'ing; it does not own any Process handles it inherited.

    >>> p = fork()
    >>> if p is None:
    ...     os._exit(7)
    >>> p.wait()
    7
    """
    close_signal = get_close_signal(close_signal)
    with sigmask.masked():
        try:
            pid = os.fork()
        except OSError as e:
            raise ForkError('fork', e.errno, e.strerror) from e
    if pid == 0:
        return None
    logger.debug('forked %d', pid)
    return Process(pid, close_signal)
