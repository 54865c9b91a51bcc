import asyncio
import socket
from typing import Any, Coroutine, Protocol


Address = tuple[str, int]


class ExecutionContext(Protocol):
    """
    Defines the scheduling capabilities consumed by the Listener and the
    Session.

    An ExecutionContext creates listening sockets, performs asynchronous
    accept/read/write operations on them and spawns independent logical
    flows. Every issued operation completes exactly once: the awaiting
    coroutine resumes with the result or with the raised error.

    Implementations must be safe to use concurrently from many logical flows
    and must outlive every component they drive.
    """

    def listen(self, host: str, port: int, backlog: int) -> socket.socket:
        """Create a non-blocking IPv4 TCP socket bound and listening on host:port."""

    async def accept(self, sock: socket.socket) -> tuple[socket.socket, Address]:
        """Wait for the next inbound connection and return a non-blocking socket."""

    async def recv_into(self, sock: socket.socket, buffer: memoryview) -> int:
        """Read up to len(buffer) bytes, returning 0 on orderly peer shutdown."""

    async def send(self, sock: socket.socket, data: memoryview) -> int:
        """
        Write some of data and return the number of bytes actually written.

        The write may be partial; the caller is responsible for issuing
        further writes for the remaining bytes.
        """

    def close(self, sock: socket.socket) -> None:
        """Release sock, dropping any readiness watchers registered for it."""

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[Any]:
        """Schedule coro as an independent task."""
