"""exceptions raised by pyreap

>>> from errno import ECHILD
>>> e = ProcessError('wait', ECHILD, 'No child processes')
>>> str(e)
'wait: [Errno 10] No child processes'
>>> e.operation, e.errno
('wait', 10)
>>> isinstance(ForkError('fork', 11, 'Resource temporarily unavailable'), OSError)
True
"""

__all__ = 'InvalidArgument', 'ProcessError', 'ForkError', 'SignalMaskError'


class InvalidArgument(ValueError):
    """a spawn argument, signal or redirect is malformed

    Always raised before any process is created.
    """


class ProcessError(OSError):
    """a system call on behalf of a process failed

    operation: the name of what was being done, e.g. 'wait' or 'signal'
    """
    def __init__(self, operation, errno, strerror):
        super().__init__(errno, strerror)
        self.operation = operation

    def __str__(self):
        return f'{self.operation}: [Errno {self.errno}] {self.strerror}'


class ForkError(ProcessError):
    """fork() itself failed, usually because a resource limit was hit"""


class SignalMaskError(ProcessError):
    """the signal mask could not be set up before forking"""
