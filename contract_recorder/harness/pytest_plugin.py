"""
pytest plugin - one registry per test session.

Fixtures:
    contract_config    RecorderConfig read from the environment
    contract_registry  session-wide OperationRegistry
    contract_recorder  ContractRecorder bound to that registry

Options:
    --api-spec-out=PATH   emit the registry at session end and write the
                          interchange JSON to PATH
"""

import logging

import pytest

from ..config import RecorderConfig
from ..recording.emitter import SpecEmitter
from ..recording.recorder import ContractRecorder
from ..recording.registry import OperationRegistry


logger = logging.getLogger('contract_recorder.pytest')

_REGISTRY_KEY = pytest.StashKey[OperationRegistry]()


def pytest_addoption(parser):
    group = parser.getgroup("contract-recorder")
    group.addoption(
        "--api-spec-out",
        action="store",
        default=None,
        metavar="PATH",
        help="Write the recorded API interchange document (JSON) to PATH at session end",
    )


def pytest_configure(config):
    config.stash[_REGISTRY_KEY] = OperationRegistry()


@pytest.fixture(scope="session")
def contract_config():
    """Recorder settings from the environment."""
    return RecorderConfig.from_env()


@pytest.fixture(scope="session")
def contract_registry(pytestconfig):
    """The registry shared by every test in this session."""
    return pytestconfig.stash[_REGISTRY_KEY]


@pytest.fixture(scope="session")
def contract_recorder(contract_registry, contract_config):
    return ContractRecorder.from_config(contract_registry, contract_config)


def pytest_sessionfinish(session, exitstatus):
    out = session.config.getoption("--api-spec-out")
    registry = session.config.stash.get(_REGISTRY_KEY, None)
    if not out or registry is None:
        return

    document = SpecEmitter.from_config(RecorderConfig.from_env()).emit(registry)
    path = document.write(out)
    logger.info(f"wrote {len(document)} operation(s) to {path}")
    registry.clear()
