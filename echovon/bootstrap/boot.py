import logging

from echovon.bootstrap.config.loader import get_cli_args
from echovon.bootstrap.deps import get_context, get_service
from echovon.core.helpers.utils import setup_signal_handler, setup_logging


def main():
    cli = get_cli_args()
    setup_logging(cli.log_level)

    service = get_service()
    loop = get_context().loop
    logger = logging.getLogger("echovon.boot")

    try:
        with setup_signal_handler(loop) as stop_event:
            loop.run_until_complete(service.run(stop_event))
    except OSError as exc:
        logger.error(f"Cannot start echo server: {exc}")
        raise SystemExit(1)
    except KeyboardInterrupt:
        pass
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()


if __name__ == "__main__":
    main()
