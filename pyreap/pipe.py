__all__ = 'Pipe',

from .fd import FD
import os


class Pipe:
    """wrapper around os.pipe

    Both ends are FDs, closeable and close-on-exec, so either can be handed to
    spawn() as a redirect source.

    >>> p = Pipe()
    >>> p.write(b'hello')
    5
    >>> p.read()
    b'hello'
    """
    def __init__(self, mode='b'):
        """initialize the pipe

        mode: whatever would be passed to open(), except 'r' and 'w' since the
              read endpoint gets and 'r' and the write endpoint a 'w'
        """
        self.fds = tuple(
            FD(fd, f'{rw}{mode}')
            for fd, rw in zip(os.pipe(), 'rw')
        )

    @property
    def read_fd(self):
        return self.fds[0]

    @property
    def write_fd(self):
        return self.fds[1]

    def close(self, invalid_ok=True):
        for fd in self.fds:
            fd.close(invalid_ok)

    def write(self, data):
        """open the write FD, feed it some bytes and close it

        The data has to fit in the pipe buffer unless something else is
        already reading the other end.
        """
        with self.write_fd.open() as file:
            return file.write(data)

    def read(self):
        """read until every write end is closed, then close the read FD"""
        with self.read_fd.open() as file:
            return file.read()

    def __repr__(self):
        return f'{type(self).__name__}()<{self.read_fd}, {self.write_fd}>'
