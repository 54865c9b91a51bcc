from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from echovon.core.transport.session import Session


class SessionState(StrEnum):
    """
    Phase of a Session's echo cycle.

    reading -> writing -> reading -> ... -> closed
    """
    reading = "reading"
    """A read is outstanding, no write is in flight."""

    writing = "writing"
    """The last read span is being written back."""

    closed = "closed"
    """Terminal: the socket has been released."""


@dataclass
class ServerState:
    """
    Shared runtime registry for a Listener and its Sessions.

    This object is mutated by:
    - Session: adds itself on construction, removes itself once closed
    - Listener: registers the task running each Session
    - EchoService.shutdown(): waits for connections and tasks to complete

    Sessions never observe each other through this registry.
    """
    connections: set[Session] = field(default_factory=set)
    """
    Set of live Session instances. Each accepted TCP connection
    corresponds to one Session.
    """

    tasks: set[asyncio.Task[None]] = field(default_factory=set)
    """
    Set of tasks running Session echo loops.
    Each task is removed via task.add_done_callback(tasks.discard).
    """
