import socket
import threading
from typing import Optional, Tuple


class ListeningSocket:
    """
    The server's one listening endpoint.

    Owned by the accept loop, but the shutdown handler holds the same
    object so it can close it early. ``close`` is idempotent and may be
    called while another thread is blocked in ``accept``: the socket is
    shut down first, which wakes the blocked accept with an ``OSError``.
    """

    def __init__(self):
        self._sock: Optional[socket.socket] = None
        self._lock = threading.RLock()
        self._closed = False

    @property
    def address(self) -> Tuple[str, int]:
        return self._sock.getsockname()

    @property
    def closed(self) -> bool:
        return self._closed

    def create(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        with self._lock:
            if self._closed:
                sock.close()
                raise OSError("listening socket already closed")
            self._sock = sock

    def bind(self, host: str, port: int) -> None:
        self._sock.bind((host, port))

    def listen(self, backlog: int) -> None:
        self._sock.listen(backlog)

    def accept(self) -> Tuple[socket.socket, tuple]:
        sock = self._sock
        if sock is None or self._closed:
            raise OSError("listening socket is closed")
        return sock.accept()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # not listening yet, or already torn down by the kernel
            pass
        sock.close()
