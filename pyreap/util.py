r"""pipe-style shortcuts

These wrap spawn() and the Process methods as funcpipes Pipes, so they can
be called normally or chained with |:

>>> ['sh', '-c', 'exit 3'] | run
3
>>> ['sleep', '10'] | proc | kill | wait
129
>>> 'true' | proc & close
>>> 2 in lsof()
True

`proc` is `spawn` and `run` is `proc & wait`.
"""

__all__ = (
    'lsof',
    'to',
    'proc', 'wait', 'kill', 'close', 'run',
)

from funcpipes import Pipe, to
from . import fd
from .fork_exec import spawn


@Pipe
def lsof(pid=None):
    """list open file descriptors as {fd: target}; needs /proc"""
    return fd.lsof(pid)


@Pipe
def proc(*args, **kwargs):
    r"""spawns a Process, see help(spawn)"""
    return spawn(*args, **kwargs)


@Pipe
def kill(process, sig='SIGTERM'):
    """send sig to process and pass it on"""
    process.signal(sig)
    return process


wait = to.wait
close = to.close
run = proc & wait
