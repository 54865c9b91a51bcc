from dataclasses import dataclass


@dataclass
class ListenerConfig:
    """
    Static configuration for an echovon Listener.

    This structure defines all parameters required to start accepting
    connections: networking, per-connection buffer capacity and graceful
    shutdown behavior.
    """
    host: str = "127.0.0.1"
    """
    IPv4 address on which the listener binds.
    """

    port: int = 0
    """
    TCP port to bind. If set to 0, the OS selects an available port.
    """

    backlog: int = 128
    """
    Maximum number of pending TCP connections waiting for accept().
    """

    buffer_size: int = 1024
    """
    Capacity of the per-session read buffer. A single read never returns
    more than this many bytes, so larger payloads are echoed in chunks.
    """

    timeout_graceful_shutdown: float = 5.0
    """
    Maximum time (in seconds) allowed for graceful shutdown:
    - active sessions must close
    - tasks registered in ServerState.tasks must complete
    After this timeout, remaining tasks are cancelled.
    """
