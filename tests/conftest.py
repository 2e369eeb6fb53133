# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from ticketing.core.config import Settings
from ticketing.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        LEDGER_PATH=str(tmp_path / "data" / "tickets.csv"),
        DATABASE_URL=f"sqlite:///{(tmp_path / 'reports.db').as_posix()}",
        VALIDATION_FAILURE_RATE=0.0,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
