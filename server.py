import argparse
import signal
import socket
import sys
import threading

from hello_tcp.config import EXIT_FAILURE, EXIT_SUCCESS, Settings, server_settings
from hello_tcp.log import FileLog, complain, quiet_console, say
from hello_tcp.sockets import ListeningSocket


def handle_client(conn: socket.socket, addr, log: FileLog, buffer_size: int, reply: bytes):
    """
    Serve exactly one request on ``conn``: one read, one fixed reply.

    Runs on its own thread. Whatever happens, ``conn`` is closed exactly
    once before the thread ends, and nothing is re-raised to the caller.
    """
    try:
        try:
            data = conn.recv(buffer_size)
        except OSError as e:
            complain(f"Read: {e}")
            log.error("Failed to read client message.")
            return
        log.info("Successfully read message from client.")
        say(f"Message from client: {data.decode('ascii', errors='replace')}")

        try:
            conn.sendall(reply)
        except OSError as e:
            complain(f"Send: {e}")
            log.error("Failed to send message to client.")
            return
        log.info("Successfully sent message to client.")
        say("Hello message sent")
    finally:
        conn.close()
        log.info(f"Closed the socket connection from {addr[0]}:{addr[1]}.")


def spawn_handler(conn: socket.socket, addr, log: FileLog, settings: Settings):
    # Detached: the accept loop never joins it, and daemon threads do not
    # hold the process open on shutdown.
    threading.Thread(target=handle_client,
                     args=(conn, addr, log, settings.buffer_size, settings.reply_bytes),
                     daemon=True).start()


def accept_loop(listener: ListeningSocket, log: FileLog, settings: Settings, spawn=spawn_handler) -> int:
    """Accept until the listening socket fails; return the exit status for that failure."""
    while True:
        try:
            conn, addr = listener.accept()
        except OSError as e:
            complain(f"accept: {e}")
            log.error(f"Failed to accept connection: {e}")
            return EXIT_FAILURE

        try:
            spawn(conn, addr, log, settings)
        except (RuntimeError, MemoryError) as e:
            complain(f"could not create thread: {e}")
            log.error(f"Could not start a handler for {addr[0]}:{addr[1]}, dropping connection: {e}")
            conn.close()


def open_listener(listener: ListeningSocket, settings: Settings, log: FileLog) -> None:
    """Create, bind and listen; any failure here is fatal."""
    try:
        listener.create()
    except OSError as e:
        complain(f"SOCKET FAILED: {e}")
        log.error("Socket creation failed.")
        sys.exit(EXIT_FAILURE)

    try:
        listener.bind(settings.host, settings.port)
    except OSError as e:
        complain(f"BIND FAILED: {e}")
        log.error(f"Bind to {settings.host}:{settings.port} failed: {e}")
        listener.close()
        sys.exit(EXIT_FAILURE)

    try:
        listener.listen(settings.backlog)
    except OSError as e:
        complain(f"LISTEN: {e}")
        log.error(f"Listen on {settings.host}:{settings.port} failed: {e}")
        listener.close()
        sys.exit(EXIT_FAILURE)

    host, port = listener.address
    log.info(f"Server listening on {host}:{port}")
    say(f"Server listening on {host}:{port}")


class ShutdownController:
    """
    Turns SIGINT/SIGTERM into an abrupt shutdown.

    Handlers already running are not waited for. Closing the listening
    socket makes any pending accept fail, and the process then exits 0.
    """

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self, listener: ListeningSocket, log: FileLog):
        self.listener = listener
        self.log = log

    def install(self, signals=SIGNALS):
        # signal.signal only works on the main thread
        for signum in signals:
            signal.signal(signum, self.handle)

    def handle(self, signum, frame):
        say("Shutdown signal received")
        try:
            self.log.info("Shutdown signal received, closing server.")
        except RuntimeError as e:
            # loguru refuses to re-enter a sink the main thread is already writing to
            complain(f"Shutdown entry not logged: {e}")
        self.listener.close()
        sys.exit(EXIT_SUCCESS)


def main(argv=None):
    ap = argparse.ArgumentParser(description="Greeting server: one read and one fixed reply per connection.")
    ap.add_argument("--host", help="Interface to bind (default: all interfaces)")
    ap.add_argument("--port", type=int, help="TCP port to listen on (default: 8080)")
    ap.add_argument("--backlog", type=int, help="listen() backlog (default: 3)")
    ap.add_argument("--buffer-size", type=int, help="Bytes read per request (default: 1024)")
    ap.add_argument("--log-file", help="Append log entries here (default: server.log)")
    args = ap.parse_args(argv)

    try:
        settings = server_settings(host=args.host, port=args.port, backlog=args.backlog,
                                   buffer_size=args.buffer_size, log_file=args.log_file)
    except ValueError as e:
        raise SystemExit(f"Invalid server configuration: {e}")

    quiet_console()
    log = FileLog(settings.log_file)
    log.info("Server starting.")

    listener = ListeningSocket()
    ShutdownController(listener, log).install()
    open_listener(listener, settings, log)

    sys.exit(accept_loop(listener, log, settings))


if __name__ == "__main__":
    main()
