import asyncio
import logging

from echovon.core.models.config import ListenerConfig
from echovon.core.models.state import ServerState
from echovon.core.ports.context import ExecutionContext
from echovon.core.transport.listener import Listener


class EchoService:
    """
    Process-level lifecycle of the echo service.

    EchoService builds a Listener from the static configuration, starts it,
    and coordinates graceful shutdown once asked to stop. The Listener and
    its Sessions do not know about process shutdown: stopping in-flight
    Sessions is this service's job.

    On shutdown, the Listener is closed first so that no further connection
    is accepted. Every live Session is then asked to shut down, which makes
    its pending read complete with zero bytes. The service waits for all
    connections and tasks to finish; if the graceful shutdown timeout is
    exceeded, the remaining tasks are cancelled and an error is logged.
    """
    def __init__(
        self,
        config: ListenerConfig,
        context: ExecutionContext,
    ) -> None:
        self._config = config
        self.state = ServerState()
        self._listener = Listener(
            config=config,
            context=context,
            server_state=self.state,
        )
        self._logger = logging.getLogger("core.service.echo")

    @property
    def listener(self) -> Listener:
        return self._listener

    async def start(self) -> None:
        self._listener.start()
        self._logger.info("Echo server listening at %s:%d", *self._listener.listen)

    async def run(self, stop_event: asyncio.Event) -> None:
        await self.start()
        await stop_event.wait()
        self._logger.info("Stop signal received, shutting down.")
        await self.shutdown()

    async def shutdown(self) -> None:
        self._listener.close()
        await self._listener.wait_closed()

        for session in self.state.connections.copy():
            session.shutdown()

        try:
            await asyncio.wait_for(
                self._wait_task_complete(),
                timeout=self._config.timeout_graceful_shutdown
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Cancel {len(self.state.tasks)} running session(s), "
                f"timeout graceful shutdown: {self.state.tasks}"
            )
            for task in self.state.tasks.copy():
                task.cancel("Session cancelled, timeout graceful shutdown exceeded")

        self._logger.info("Echo server shutdown complete.")

    async def _wait_task_complete(self) -> None:
        if self.state.connections:
            self._logger.info("Waiting for client connections to close.")

        while self.state.connections:
            await asyncio.sleep(0.1)

        if self.state.tasks:
            self._logger.info("Waiting for session tasks to complete.")

        while self.state.tasks:
            await asyncio.sleep(0.1)
