import asyncio
import logging
import socket

from echovon.core.models.state import ServerState, SessionState
from echovon.core.ports.context import Address, ExecutionContext


class Session:
    """
    Echoes bytes on a single accepted TCP connection until it terminates.

    The Session owns its socket exclusively from the moment the Listener
    hands it over. It drives a strict read -> write -> read cycle through the
    ExecutionContext: a read requests up to the buffer capacity, and the
    bytes actually received are written back before the next read is
    issued. A read and a write are never in flight at the same time, which
    keeps the echoed bytes in order without any synchronization.

    A single bytearray of fixed capacity is reused for every read. Only the
    span filled by the last read is echoed, never the unwritten padding. If
    the context accepts only part of that span, the remaining bytes are
    written by further send operations before reading resumes.

    The cycle ends on a zero-length read (orderly peer shutdown), on any read
    or write error, or when the running task is cancelled. In every case the
    socket is released exactly once and the Session unregisters itself from
    the ServerState. Errors are reported to the injected logger and never
    retried or raised to the caller.
    """
    def __init__(
        self,
        sock: socket.socket,
        address: Address | None,
        context: ExecutionContext,
        server_state: ServerState,
        buffer_size: int = 1024,
        logger: logging.Logger | None = None,
    ) -> None:
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")

        self._sock = sock
        self._address = address
        self._context = context
        self._connections = server_state.connections
        self._buffer = bytearray(buffer_size)
        self._view = memoryview(self._buffer)
        self._state = SessionState.reading
        self._logger = logger or logging.getLogger("core.transport.session")
        self._who = "%s:%d" % address if address else ""
        self._connections.add(self)

    @property
    def address(self) -> Address | None:
        return self._address

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    def start(self) -> asyncio.Task[None]:
        """
        Spawn the echo cycle as an independent task on the context.

        The socket is released when the task ends, even if it is cancelled
        before its first step.
        """
        task = self._context.spawn(self.run())
        task.add_done_callback(self._on_task_done)
        return task

    async def run(self) -> None:
        try:
            while self._state is not SessionState.closed:
                size = await self.start_read()
                if size:
                    await self.start_write(size)
        finally:
            self._release()

    async def start_read(self) -> int:
        """
        Read up to the buffer capacity.

        Returns the number of bytes received, or 0 once the Session has
        been closed by peer shutdown or by a read error.
        """
        self._state = SessionState.reading
        try:
            size = await self._context.recv_into(self._sock, self._view)
        except OSError as exc:
            self._logger.warning(f"{self._who} - Read failed: {exc}")
            self._release()
            return 0

        if size == 0:
            self._logger.info(f"{self._who} - Connection closed by peer")
            self._release()
            return 0

        self._logger.debug(f"{self._who} - Read {size} byte(s)")
        self._state = SessionState.writing
        return size

    async def start_write(self, size: int) -> bool:
        """
        Write back the first size bytes of the buffer.

        Partial sends are followed by further sends until the whole span has
        been written. Returns False if the Session was closed by a write
        error.
        """
        self._state = SessionState.writing
        pending = self._view[:size]
        try:
            while pending:
                sent = await self._context.send(self._sock, pending)
                pending = pending[sent:]
        except OSError as exc:
            self._logger.warning(f"{self._who} - Write failed: {exc}")
            self._release()
            return False

        self._logger.debug(f"{self._who} - Wrote {size} byte(s)")
        self._state = SessionState.reading
        return True

    def shutdown(self) -> None:
        """
        Half-close both directions of the connection.

        A pending read then completes with zero bytes and the Session ends
        through its regular peer shutdown path.
        """
        if self._state is SessionState.closed:
            return

        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            self._logger.debug(f"{self._who} - Shutdown ignored: {exc}")

    def _on_task_done(self, _: asyncio.Task[None]) -> None:
        self._release()

    def _release(self) -> None:
        if self._state is SessionState.closed:
            return

        self._state = SessionState.closed
        self._context.close(self._sock)
        self._connections.discard(self)
