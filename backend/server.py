"""Process lifecycle: connect storage, bind the listener, serve, drain on SIGTERM, close storage.

States run starting -> listening -> draining -> stopped. Storage or bind failures at start exit
with status 1. Uncaught exceptions (any thread) and unhandled asyncio errors exit immediately with
status 1, without draining.
"""
import asyncio
from collections.abc import Callable
import logging
import os
import signal
import socket
import sys
import threading

from fastapi import FastAPI
import uvicorn

from application import create_app
from db import Database
from utils import config
from utils.errors import ConfigurationError, FatalStartupError

LOG = logging.getLogger(__name__)

STARTING = "starting"
LISTENING = "listening"
DRAINING = "draining"
STOPPED = "stopped"

_HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGINT)

ExitFn = Callable[[BaseException], None]


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def exit_now(exc: BaseException) -> None:
    """Terminate the process with status 1 right away; in-flight requests are abandoned."""
    LOG.critical("Exiting after fatal error: %s", exc)
    logging.shutdown()
    os._exit(1)


def install_fail_fast_hooks(exit_fn: ExitFn = exit_now) -> None:
    """Route uncaught exceptions from the main thread and worker threads to exit_fn."""

    def _excepthook(exc_type, exc, tb):
        LOG.critical("Uncaught exception: %s", exc, exc_info=(exc_type, exc, tb))
        exit_fn(exc)

    def _thread_excepthook(args):
        if args.exc_type is SystemExit:
            return
        name = args.thread.name if args.thread is not None else "unknown"
        LOG.critical(
            "Uncaught exception in thread %s: %s",
            name,
            args.exc_value,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        exit_fn(args.exc_value)

    sys.excepthook = _excepthook
    threading.excepthook = _thread_excepthook


def attach_database_logging(database: Database) -> None:
    """Log the database's connectivity events; a lost connection is a warning, never fatal."""
    database.add_listener("connected", lambda url: LOG.info("Connected to database %s", url))
    database.add_listener("error", lambda exc: LOG.error("Database error: %s", exc))

    def _disconnected(exc):
        if exc is None:
            LOG.info("Database disconnected")
        else:
            LOG.warning("Database disconnected: %s", exc)

    database.add_listener("disconnected", _disconnected)


def bind_listener(host: str, port: int) -> socket.socket:
    """Bind (not yet listen on) a TCP socket. Raises FatalStartupError if the address is unusable."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise FatalStartupError(f"Could not bind {host}:{port}: {e}") from e
    sock.set_inheritable(True)
    return sock


class _Server(uvicorn.Server):
    """uvicorn server that reports listening/draining transitions to its Lifecycle."""

    def __init__(self, uv_config: uvicorn.Config, lifecycle: "Lifecycle") -> None:
        super().__init__(uv_config)
        self._lifecycle = lifecycle

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started and not self.should_exit:
            self._lifecycle.state = LISTENING
            LOG.info("Server running at http://%s:%d", self._lifecycle.host, self._lifecycle.bound_port)

    def handle_exit(self, sig, frame) -> None:
        self._lifecycle.begin_drain(sig)
        super().handle_exit(sig, frame)


class Lifecycle:
    """Owns the listener and the storage handle for one process run."""

    def __init__(
        self,
        database: Database,
        app: FastAPI,
        host: str = config.HOST,
        port: int = config.PORT,
        shutdown_timeout: float = config.SHUTDOWN_TIMEOUT,
        exit_fn: ExitFn = exit_now,
    ) -> None:
        self.database = database
        self.app = app
        self.host = host
        self.port = port
        self.shutdown_timeout = shutdown_timeout
        self.exit_fn = exit_fn
        self.state = STARTING
        self.sock: socket.socket | None = None
        self.server: _Server | None = None

    @property
    def bound_port(self) -> int:
        return self.sock.getsockname()[1] if self.sock is not None else self.port

    def start(self) -> None:
        """Connect storage, then bind the listener. Raises FatalStartupError; storage is closed on bind failure."""
        self.database.connect()
        try:
            self.sock = bind_listener(self.host, self.port)
        except FatalStartupError:
            self.database.close()
            raise

    def begin_drain(self, sig) -> None:
        if self.state in (LISTENING, STARTING):
            name = signal.Signals(sig).name if sig else "shutdown request"
            LOG.info("%s received. Shutting down...", name)
            self.state = DRAINING

    def _on_asyncio_error(self, loop, context) -> None:
        exc = context.get("exception") or RuntimeError(context.get("message", "unhandled asyncio error"))
        LOG.critical("Unhandled asyncio error: %s", context.get("message"), exc_info=context.get("exception"))
        self.exit_fn(exc)

    def _on_signal_after_drain(self, signum, frame) -> None:
        # uvicorn re-raises the signal it handled once serving ends; shutdown is already underway.
        LOG.debug("Signal %s after shutdown started", signum)

    async def serve(self) -> None:
        """Serve on the bound socket until a termination signal, then close storage."""
        if self.sock is None:
            raise FatalStartupError("start() must bind the listener before serve()")
        loop = asyncio.get_running_loop()
        previous_loop_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._on_asyncio_error)

        previous_signal_handlers = {}
        if threading.current_thread() is threading.main_thread():
            for sig in _HANDLED_SIGNALS:
                previous_signal_handlers[sig] = signal.signal(sig, self._on_signal_after_drain)

        uv_config = uvicorn.Config(
            self.app,
            lifespan="on",
            log_config=None,
            timeout_graceful_shutdown=self.shutdown_timeout,
        )
        self.server = _Server(uv_config, self)
        try:
            await self.server.serve(sockets=[self.sock])
        finally:
            for sig, handler in previous_signal_handlers.items():
                signal.signal(sig, handler)
            loop.set_exception_handler(previous_loop_handler)
            self.database.close()
            self.state = STOPPED
            LOG.info("Server stopped")


def run(
    database: Database,
    app: FastAPI,
    host: str = config.HOST,
    port: int = config.PORT,
    shutdown_timeout: float = config.SHUTDOWN_TIMEOUT,
    exit_fn: ExitFn = exit_now,
) -> int:
    """Run one full lifecycle and return the process exit status."""
    lifecycle = Lifecycle(database, app, host, port, shutdown_timeout, exit_fn)
    try:
        lifecycle.start()
    except FatalStartupError as e:
        LOG.error("Startup failed: %s", e)
        return 1
    asyncio.run(lifecycle.serve())
    if not lifecycle.server.started:
        LOG.error("Server did not start")
        return 1
    return 0


def main() -> int:
    configure_logging()
    install_fail_fast_hooks()
    try:
        database = Database.from_config()
    except ConfigurationError as e:
        LOG.error("Configuration error: %s", e)
        return 1
    attach_database_logging(database)
    app = create_app(database, fatal_error_hook=exit_now)
    return run(database, app)


if __name__ == "__main__":
    sys.exit(main())
