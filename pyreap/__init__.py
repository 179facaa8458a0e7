"""pyreap - spawn child processes that always get reaped

A spawned process comes back as a Process handle:

>>> import os
>>> p = spawn(['sh', '-c', 'exit 5'])
>>> p.wait()
5

Redirects map child descriptors to streams in the parent, in order:

>>> pipe = Pipe()
>>> p = spawn('echo hello', redirects={ 1: pipe.write_fd })
>>> pipe.write_fd.close(); pipe.read()
b'hello\\n'

A child killed by a signal exits with 129, whichever signal it was:

>>> p = spawn('sleep 10')
>>> p.signal('SIGTERM'); p.wait()
129

and so does one that is closed, since closing sends its close signal
(SIGTERM unless spawn() was given another) and waits:

>>> with spawn('sleep 10', close_signal='SIGKILL') as p:
...     pass
...
>>> p.exit_code
129

A handle dropped while its child is still running does the same, so no
zombies are left behind. Relying on that makes the timing depend on the
garbage collector; close() or `with` do not.

Setting up the child happens after the fork, so failures there, including
a command that cannot be found, show up as exit code 1 with a message on
the child's standard error:

>>> spawn('no-such-command-anywhere', redirects={ 2: FD(os.open(os.devnull, os.O_WRONLY)) }).wait()
1

There are also pipe-style shortcuts (see pyreap.util):

>>> 'true' | run
0
"""

import logging

from .errors import *  # noqa: F401 F403
from .fd import FD  # noqa: F401
from .pipe import Pipe  # noqa: F401
from .process import *  # noqa: F401 F403
from .fork_exec import spawn, fork  # noqa: F401
from .util import *  # noqa: F401 F403

logging.getLogger(__name__).addHandler(logging.NullHandler())
