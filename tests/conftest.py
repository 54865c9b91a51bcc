import os
from typing import Generator

import pytest
import yaml

from echovon.core.models.config import ListenerConfig
from echovon.core.models.state import ServerState
from tests.fake.fake_context import FakeContext, FakeSocket


@pytest.fixture
def context():
    return FakeContext()


@pytest.fixture
def client_socket():
    return FakeSocket(sockname=("127.0.0.1", 9999))


@pytest.fixture
def server_state():
    return ServerState()


@pytest.fixture
def listener_config():
    return ListenerConfig(
        host="127.0.0.1",
        port=0,
        backlog=10,
        buffer_size=16,
        timeout_graceful_shutdown=1.0,
    )


@pytest.fixture
def config_file(tmp_path):
    file = tmp_path / "echovon.yaml"

    data = {
        "server": {
            "host": "127.0.0.1",
            "port": 7100,
            "backlog": 10,
            "buffer_size": 512,
            "timeout_graceful_shutdown": 1,
        }
    }

    file.write_text(yaml.dump(data))
    return file


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    backup = os.environ.copy()

    try:
        for key in list(os.environ):
            if key.startswith("ECHOVON") or key == "TEST_ECHOVONCONFIG":
                del os.environ[key]
        yield
    finally:
        os.environ.clear()
        os.environ.update(backup)
