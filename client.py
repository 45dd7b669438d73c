import argparse
import socket
import sys
import time
from typing import Optional

from hello_tcp.config import EXIT_FAILURE, client_settings
from hello_tcp.log import FileLog, complain, quiet_console, say

# exit status for address and connect failures (-1 as an unsigned byte)
EXIT_CONNECT_FAILURE = 255


class ClientError(Exception):
    """A failed request; ``status`` is what the process should exit with."""

    def __init__(self, message: str, status: int = EXIT_FAILURE):
        super().__init__(message)
        self.status = status


def build_greeting(now: Optional[float] = None) -> str:
    return f"Hello from client at {time.ctime(now)}"


def _check_address(host: str) -> None:
    try:
        socket.inet_pton(socket.AF_INET, host)
    except OSError:
        raise ClientError("Invalid address/ Address not supported", EXIT_CONNECT_FAILURE)


def request_greeting(host: str, port: int, message: str, buffer_size: int, log: FileLog) -> str:
    """Connect once, send ``message``, read one reply and return it as text."""
    log.info("Starting client.")

    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        log.error("Socket creation failed.")
        raise ClientError(f"Socket creation error: {e}")
    log.debug("Socket created successfully.")

    with s:
        try:
            _check_address(host)
        except ClientError:
            log.error("Invalid address/ Address not supported.")
            raise
        log.debug("Server address set successfully.")

        try:
            s.connect((host, port))
        except OSError as e:
            log.error("Connection to server failed.")
            raise ClientError(f"Connection Failed: {e}", EXIT_CONNECT_FAILURE)
        log.info("Connected to server successfully.")

        try:
            s.sendall(message.encode("ascii", errors="replace"))
        except OSError as e:
            log.error("Failed to send message to server.")
            raise ClientError(f"Send failed: {e}")
        log.info("Message sent to server successfully.")

        try:
            data = s.recv(buffer_size)
        except OSError as e:
            log.error("Failed to receive reply from server.")
            raise ClientError(f"Receive failed: {e}")
        # only the bytes actually received, never the whole buffer
        reply = data.decode("ascii", errors="replace")
        log.info("Received reply from server.")

    log.info("Connection closed. Client exiting.")
    return reply


def main(argv=None):
    ap = argparse.ArgumentParser(description="Send one greeting to the server and print its reply.")
    ap.add_argument("--host", help="Server IPv4 address (default: 127.0.0.1)")
    ap.add_argument("--port", type=int, help="Server port (default: 8080)")
    ap.add_argument("--message", help="Text to send (default: a timestamped greeting)")
    ap.add_argument("--log-file", help="Append log entries here (default: client.log)")
    args = ap.parse_args(argv)

    try:
        settings = client_settings(host=args.host, port=args.port, log_file=args.log_file)
    except ValueError as e:
        raise SystemExit(f"Invalid client configuration: {e}")

    quiet_console()
    log = FileLog(settings.log_file)
    message = args.message if args.message is not None else build_greeting()

    try:
        reply = request_greeting(settings.host, settings.port, message, settings.buffer_size, log)
    except ClientError as e:
        complain(e)
        sys.exit(e.status)

    say(f"Server reply: {reply}")


if __name__ == "__main__":
    main()
