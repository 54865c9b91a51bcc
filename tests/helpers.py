import asyncio
import os
from typing import Callable

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, YamlConfigSettingsSource

from echovon.bootstrap.config.settings import EchovonConfig


class FakeEchovonConfig(EchovonConfig):
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        configfile = os.environ.get("TEST_ECHOVONCONFIG")
        if configfile is None:
            return init_settings, env_settings
        return init_settings, env_settings, YamlConfigSettingsSource(settings_cls, yaml_file=configfile)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout=timeout)


async def read_exactly(reader: asyncio.StreamReader, size: int, timeout: float = 2.0) -> bytes:
    return await asyncio.wait_for(reader.readexactly(size), timeout=timeout)
