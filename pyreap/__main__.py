from doctest import testmod
from . import errors, sigmask, fd, redirect, posix_wait, process, pipe, fork_exec, util
import pyreap

failed = 0
for mod in pyreap, errors, sigmask, fd, redirect, posix_wait, process, pipe, fork_exec, util:
    print(f'\t{mod.__name__}...')
    failed += testmod(mod).failed

raise SystemExit(1 if failed else 0)
