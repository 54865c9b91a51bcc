import asyncio
from functools import lru_cache

from pydantic import ValidationError

from echovon.bootstrap.config.loader import get_cli_args
from echovon.bootstrap.config.settings import EchovonConfig
from echovon.core.service.echo import EchoService
from echovon.infra.asyncio_context import AsyncioContext


@lru_cache
def get_service() -> EchoService:
    config = get_config()

    return EchoService(
        config=config.get_listener_config(),
        context=get_context(),
    )


@lru_cache
def get_context() -> AsyncioContext:
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    return AsyncioContext(loop=loop)


@lru_cache
def get_config() -> EchovonConfig:
    cli = get_cli_args()
    overrides = {
        key: value
        for key, value in (("host", cli.host), ("port", cli.port))
        if value is not None
    }

    try:
        if overrides:
            return EchovonConfig(server=overrides)  # type: ignore[arg-type]
        return EchovonConfig()
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        raise SystemExit(format_validation_error(ex))


def format_validation_error(ex: ValidationError) -> str:
    msg = ["Configuration validation failed:"]
    for err in ex.errors():
        msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
    return "\n".join(msg)
