import ipaddress

from pydantic import BaseModel, Field, field_validator
from typing import Annotated
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from echovon.bootstrap.config.loader import get_configfile
from echovon.core.models.config import ListenerConfig


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description=(
                "IPv4 bind address for the echo listener.\n"
                "Defaults to the loopback interface; no other address family is supported."
            ),
            default="127.0.0.1"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port to listen on. 0 lets the OS pick a free port.",
            default=7000,
            ge=0,
            le=65535
        )
    ]

    backlog: Annotated[
        int,
        Field(
            description="Maximum number of pending TCP connections.",
            default=128,
            gt=0
        )
    ]

    buffer_size: Annotated[
        int,
        Field(
            description=(
                "Capacity of the per-connection read buffer.\n"
                "Payloads larger than this are echoed back in several chunks."
            ),
            default=1024,
            gt=0
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for open connections to close on shutdown.",
            default=5.0,
            ge=0
        )
    ]

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        try:
            ipaddress.IPv4Address(v)
        except ValueError:
            raise ValueError(f"Host {v!r} is not an IPv4 address.") from None
        return v


class EchovonConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ECHOVON_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    server: Annotated[
        ServerSettings,
        Field(
            description=(
                "Local server configuration.\n"
                "Controls where the echo listener accepts TCP connections, the\n"
                "per-connection buffer capacity and graceful shutdown behavior."
            ),
            default_factory=ServerSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        configfile = get_configfile()
        if configfile is None:
            return init_settings, env_settings
        return init_settings, env_settings, YamlConfigSettingsSource(settings_cls, yaml_file=configfile)

    def get_listener_config(self) -> ListenerConfig:
        server = self.server
        return ListenerConfig(
            host=server.host,
            port=server.port,
            backlog=server.backlog,
            buffer_size=server.buffer_size,
            timeout_graceful_shutdown=server.timeout_graceful_shutdown,
        )
