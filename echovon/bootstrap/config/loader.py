import argparse
import os
from functools import lru_cache
from pathlib import Path


@lru_cache
def get_cli_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="echovon",
        description=(
            "Start an echovon server.\n\n"
            "echovon is an asynchronous TCP echo service: every byte received\n"
            "on a connection is written back verbatim and in order."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to an echovon configuration file"
    )

    parser.add_argument(
        "--host",
        type=str,
        help="IPv4 bind address, overrides server.host"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        help="TCP port to listen on, overrides server.port (0 picks a free port)"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity for the server.\n"
            "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL.\n\n"
            "DEBUG    → every read and write, useful for tracing.\n"
            "INFO     → accepted and closed connections (default).\n"
            "WARNING  → only warnings and errors.\n"
            "ERROR    → only errors.\n"
            "CRITICAL → only critical failures.\n\n"
            "Example:\n"
            "  --log-level DEBUG"
        ),
    )

    return parser.parse_args()


def resolve_configfile(raw: str | None) -> Path | None:
    # Priority: CLI > ENV > default file in current working directory
    raw = raw or os.getenv("ECHOVONCONFIG")

    if raw is None:
        file = Path.cwd() / "echovon.yaml"
        return file if file.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the ECHOVONCONFIG environment variable\n"
            "  - Or place an 'echovon.yaml' file in the current working directory."
        )

    return file


@lru_cache
def get_configfile() -> Path | None:
    return resolve_configfile(get_cli_args().config)
