"""
Tests for application startup and shutdown.
The motor client is replaced by a mock; no server is needed.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from api.config import config
from api.database import LIST_SORT, BookStore
from api.main import app


@pytest.fixture
def collection():
    return AsyncMock()


@pytest.fixture
def motor_client(collection):
    """Patched AsyncIOMotorClient instance whose database/collection lookups return `collection`."""
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.__getitem__.return_value.__getitem__.return_value = collection
    with patch("api.main.AsyncIOMotorClient", return_value=client) as client_cls, \
            patch("api.main.setup_logging"):
        client.cls = client_cls
        yield client
    if hasattr(app.state, "book_store"):
        del app.state.book_store


def test_startup_connects_and_prepares_store(motor_client, collection):
    with TestClient(app):
        store = app.state.book_store
        assert isinstance(store, BookStore)
        assert store.collection is collection
        motor_client.admin.command.assert_awaited_once_with("ping")
        collection.create_index.assert_awaited_once_with(LIST_SORT)
        motor_client.close.assert_not_called()

    motor_client.close.assert_called_once()


def test_client_is_timezone_aware_with_timeouts(motor_client):
    with TestClient(app):
        pass

    args, kwargs = motor_client.cls.call_args
    assert args == (config.mongodb_url,)
    assert kwargs["tz_aware"] is True
    assert kwargs["serverSelectionTimeoutMS"] == config.store_timeout_ms
    assert kwargs["socketTimeoutMS"] == config.store_timeout_ms


def test_startup_fails_when_database_unreachable(motor_client, collection):
    motor_client.admin.command.side_effect = ServerSelectionTimeoutError("down")

    with pytest.raises(ServerSelectionTimeoutError):
        with TestClient(app):
            pass

    motor_client.close.assert_called_once()
    collection.create_index.assert_not_awaited()
    assert not hasattr(app.state, "book_store")
