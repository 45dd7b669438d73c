import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()  # Load .env variables

# ---------- Defaults ----------
DEFAULT_HOST = "0.0.0.0"
SERVER_IP = "127.0.0.1"
PORT = 8080
LISTEN_BACKLOG = 3
BUFFER_SIZE = 1024
SERVER_MESSAGE = "Hello from the server"
SERVER_LOG_FILE = "server.log"
CLIENT_LOG_FILE = "client.log"

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@dataclass(frozen=True)
class Settings:
    """Everything the server or the client needs to know to run once."""
    host: str = DEFAULT_HOST
    port: int = PORT
    backlog: int = LISTEN_BACKLOG
    buffer_size: int = BUFFER_SIZE
    reply: str = SERVER_MESSAGE
    log_file: str = SERVER_LOG_FILE

    def __post_init__(self):
        if not self.host:
            raise ValueError("Host cannot be empty")
        # 0 asks the OS for an ephemeral port
        if not (0 <= self.port <= 65535):
            raise ValueError("Port must be between 0 and 65535")
        if self.backlog < 0:
            raise ValueError("Listen backlog cannot be negative")
        if self.buffer_size <= 0:
            raise ValueError("Buffer size must be positive")

    @property
    def reply_bytes(self) -> bytes:
        return self.reply.encode("ascii")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def server_settings(**overrides) -> Settings:
    """Server settings from the environment; keyword overrides win (None is ignored)."""
    values = dict(
        host=os.getenv("GREETING_HOST", DEFAULT_HOST),
        port=_env_int("GREETING_PORT", PORT),
        backlog=_env_int("GREETING_BACKLOG", LISTEN_BACKLOG),
        buffer_size=_env_int("GREETING_BUFFER_SIZE", BUFFER_SIZE),
        log_file=os.getenv("SERVER_LOG_FILE", SERVER_LOG_FILE),
    )
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)


def client_settings(**overrides) -> Settings:
    """Client settings: same variables, but the host defaults to loopback."""
    values = dict(
        host=os.getenv("GREETING_SERVER_IP", SERVER_IP),
        port=_env_int("GREETING_PORT", PORT),
        buffer_size=_env_int("GREETING_BUFFER_SIZE", BUFFER_SIZE),
        log_file=os.getenv("CLIENT_LOG_FILE", CLIENT_LOG_FILE),
    )
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)
