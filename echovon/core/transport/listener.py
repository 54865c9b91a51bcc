import asyncio
import logging
import socket

from echovon.core.models.config import ListenerConfig
from echovon.core.models.state import ServerState
from echovon.core.ports.context import Address, ExecutionContext
from echovon.core.transport.session import Session


class Listener:
    """
    Owns the listening socket and the accept loop of the echo service.

    start() binds the configured endpoint through the ExecutionContext and
    spawns the accept loop. The loop keeps exactly one accept outstanding:
    as soon as a connection is accepted it is wrapped into a Session, whose
    echo cycle is spawned as an independent task, and the next accept is
    issued right away. The Listener keeps no reference to the accepted
    socket once the Session owns it.

    Any accept failure ends the loop: no retry, no backoff. Closing the
    Listener cancels the outstanding accept, which ends the loop through the
    same failure path. Sessions already handed off are not affected by the
    Listener being closed.

    Each accept completion produces exactly one notice on the injected
    logger.
    """
    def __init__(
        self,
        config: ListenerConfig,
        context: ExecutionContext,
        server_state: ServerState | None = None,
        logger: logging.Logger | None = None,
        session_logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._context = context
        self.state = server_state or ServerState()
        self._logger = logger or logging.getLogger("core.transport.listener")
        self._session_logger = session_logger or logging.getLogger("core.transport.session")

        self._sock: socket.socket | None = None
        self._listen: Address | None = None
        self._accept_task: asyncio.Task[None] | None = None
        self._closing = False

    @property
    def listen(self) -> Address:
        if self._listen is None:
            raise RuntimeError("Listener is not started")
        return self._listen

    @property
    def running(self) -> bool:
        return self._accept_task is not None and not self._accept_task.done()

    def start(self) -> None:
        if self._sock is not None or self._closing:
            raise RuntimeError("Listener can only be started once")

        config = self._config
        self._sock = self._context.listen(config.host, config.port, config.backlog)
        self._listen = self._sock.getsockname()[:2]

        self._accept_task = self._context.spawn(self._accept_loop(self._sock))
        self._accept_task.add_done_callback(self._release_socket)

    def close(self) -> None:
        if self._closing:
            return

        self._closing = True
        if self.running:
            self._accept_task.cancel()  # type: ignore[union-attr]
        else:
            self._release_socket()

    async def wait_closed(self) -> None:
        if self._accept_task is not None:
            await asyncio.wait([self._accept_task])

    async def _accept_loop(self, sock: socket.socket) -> None:
        while True:
            try:
                conn, addr = await self._context.accept(sock)
            except OSError as exc:
                self._logger.error(f"Accept failed, stop accepting: {exc}")
                return
            except asyncio.CancelledError:
                self._logger.info("Accept cancelled, listener closed")
                raise

            self._on_accepted(conn, addr)

    def _on_accepted(self, conn: socket.socket, addr: Address) -> None:
        self._logger.info("Accepted connection from %s:%d", *addr[:2])

        session = Session(
            sock=conn,
            address=addr[:2],
            context=self._context,
            server_state=self.state,
            buffer_size=self._config.buffer_size,
            logger=self._session_logger,
        )
        task = session.start()
        task.add_done_callback(self.state.tasks.discard)
        self.state.tasks.add(task)

    def _release_socket(self, _: asyncio.Future | None = None) -> None:
        sock = self._sock
        if sock is not None and sock.fileno() != -1:
            self._context.close(sock)
