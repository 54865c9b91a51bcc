import asyncio
import logging
import socket
from typing import Any, Coroutine

from echovon.core.ports.context import Address


class AsyncioContext:
    """
    ExecutionContext backed by an asyncio event loop.

    Accept and read are delegated to the loop's socket helpers
    (sock_accept, sock_recv_into). Writes are issued with a single
    non-blocking send() so that a partial write is reported to the caller
    instead of being hidden: when the kernel buffer is full, the coroutine
    waits for write readiness through loop.add_writer() and retries once.

    The loop's socket helpers return without suspending when the socket is
    already ready. accept() and send() therefore yield to the loop after
    completing, so that one busy connection cannot block acceptance or the
    other sessions.

    Spawned tasks are tracked until completion and any unhandled exception
    they raise is logged. Cancellation is not reported as an error.

    Requires a selector based loop (add_writer is not available on the
    Windows proactor loop).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = logging.getLogger("infra.asyncio_context")

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def remaining_tasks(self) -> int:
        """Number of spawned tasks that have not completed yet."""
        return len(self._tasks)

    def listen(self, host: str, port: int, backlog: int) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(backlog)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        return sock

    async def accept(self, sock: socket.socket) -> tuple[socket.socket, Address]:
        conn, addr = await self._loop.sock_accept(sock)
        conn.setblocking(False)
        # sock_accept completes without suspending when a connection is
        # already queued: yield so a connection burst cannot starve the loop
        await asyncio.sleep(0)
        return conn, addr

    async def recv_into(self, sock: socket.socket, buffer: memoryview) -> int:
        return await self._loop.sock_recv_into(sock, buffer)

    async def send(self, sock: socket.socket, data: memoryview) -> int:
        while True:
            try:
                sent = sock.send(data)
            except (BlockingIOError, InterruptedError):
                await self._wait_writable(sock)
                continue

            # Every echo cycle goes through here at least once, which keeps
            # a session with always-ready data from monopolizing the loop
            await asyncio.sleep(0)
            return sent

    def close(self, sock: socket.socket) -> None:
        fd = sock.fileno()
        if fd != -1:
            self._loop.remove_reader(fd)
            self._loop.remove_writer(fd)
        sock.close()

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[Any]:
        task = self._loop.create_task(coro)
        task.add_done_callback(self._on_done)
        self._tasks.add(task)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            return

        if ex := task.exception():
            self._logger.error(
                f"Error occurred in task {task.get_name()}: {ex}",
                exc_info=ex
            )

    async def _wait_writable(self, sock: socket.socket) -> None:
        fd = sock.fileno()
        waiter = self._loop.create_future()

        def wake() -> None:
            if not waiter.done():
                waiter.set_result(None)

        self._loop.add_writer(fd, wake)
        try:
            await waiter
        finally:
            self._loop.remove_writer(fd)
