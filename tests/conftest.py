import re
import socket
import threading
import time
from pathlib import Path

import pytest

from hello_tcp.config import Settings
from hello_tcp.log import FileLog
from hello_tcp.sockets import ListeningSocket
from server import accept_loop

ROOT = Path(__file__).resolve().parent.parent

LOG_LINE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] (DEBUG|INFO|WARNING|ERROR): .*$")


def read_lines(path):
    path = Path(path)
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").splitlines()


def wait_for_log(path, needle, count=1, timeout=5.0):
    """Poll the log file until ``needle`` shows up ``count`` times."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        lines = [line for line in read_lines(path) if needle in line]
        if len(lines) >= count:
            return lines
        time.sleep(0.02)
    raise AssertionError(f"{needle!r} seen fewer than {count} times in {path}")


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def exchange(port: int, message: bytes = b"Hello from client", timeout: float = 5.0) -> bytes:
    """One client round trip; reads until the server closes its side."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(message)
        chunks = []
        while True:
            data = s.recv(1024)
            if not data:
                break
            chunks.append(data)
    return b"".join(chunks)


class RunningServer:
    def __init__(self, settings: Settings, log: FileLog, spawn=None):
        self.settings = settings
        self.log = log
        self.listener = ListeningSocket()
        self.listener.create()
        self.listener.bind(settings.host, settings.port)
        self.listener.listen(settings.backlog)
        self.port = self.listener.address[1]
        self.status = None
        kwargs = {} if spawn is None else {"spawn": spawn}
        self.thread = threading.Thread(target=self._run, kwargs=kwargs, daemon=True)
        self.thread.start()

    def _run(self, **kwargs):
        self.status = accept_loop(self.listener, self.log, self.settings, **kwargs)

    def stop(self):
        self.listener.close()
        self.thread.join(timeout=5)


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "server.log"


@pytest.fixture
def file_log(log_path):
    log = FileLog(log_path)
    yield log
    log.close()


@pytest.fixture
def settings(log_path):
    return Settings(host="127.0.0.1", port=0, backlog=64, log_file=str(log_path))


@pytest.fixture
def start_server(settings, file_log):
    servers = []

    def start(spawn=None):
        server = RunningServer(settings, file_log, spawn=spawn)
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.stop()


@pytest.fixture
def running_server(start_server):
    return start_server()
