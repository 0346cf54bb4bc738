import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'serversetup' and tests/ as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from serversetup.core.config.properties import PROPERTIES_FILE_ENV
from serversetup.core.instance import InstanceState
from serversetup.data import clear_caches

from helpers.fakes import FakeClient, FakeClock, FakeLauncher, LauncherFactory


@pytest.fixture(autouse=True)
def _isolate_properties(monkeypatch: pytest.MonkeyPatch):
    """Keep a developer's properties file and data caches out of the tests."""
    monkeypatch.delenv(PROPERTIES_FILE_ENV, raising=False)
    clear_caches()
    yield
    clear_caches()


@pytest.fixture
def state() -> InstanceState:
    return InstanceState("test")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def launcher_factory() -> LauncherFactory:
    return LauncherFactory(FakeLauncher())
