"""Pytest fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import NullPool


@pytest.fixture()
def api_client(tmp_path, monkeypatch):
    from app.db import database

    test_engine = database.build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool
    )
    monkeypatch.setattr(database, "engine", test_engine)
    monkeypatch.setattr(
        database, "SessionLocal", async_sessionmaker(test_engine, expire_on_commit=False)
    )

    from app.main import app

    with TestClient(app) as client:
        yield client
