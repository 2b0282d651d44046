"""
Shared fixtures for the electricity alert bot test suite.

MongoDB is replaced with mongomock-motor; the balance provider and the
Telegram messenger are AsyncMocks so tests can script and inspect them.
"""

import pytest
from unittest.mock import AsyncMock
from mongomock_motor import AsyncMongoMockClient

from app.db import mongo
from app.db.indexes import create_indexes
from app.flow.context import FlowContext
from app.flow.dispatcher import Dispatcher
from app.services.session_service import ConversationSessionStore
from app.services.wanxiao_service import RoomBalance


@pytest.fixture
async def db(monkeypatch):
    """In-memory database wired into app.db.mongo, with production indexes."""
    client = AsyncMongoMockClient()
    database = client["elecbot_test"]
    monkeypatch.setattr(mongo, "_database", database)
    await create_indexes()
    yield database


@pytest.fixture
def provider():
    provider = AsyncMock()
    provider.get_balance.return_value = [RoomBalance(room_name="Building 3 Room 402", balance=55.5)]
    return provider


@pytest.fixture
def messenger():
    messenger = AsyncMock()
    messenger.send_message.return_value = {"success": True, "message_id": 77}
    messenger.delete_message.return_value = {"success": True}
    messenger.answer_callback_query.return_value = {"success": True}
    return messenger


@pytest.fixture
def sessions():
    return ConversationSessionStore()


@pytest.fixture
def ctx(sessions, provider, messenger):
    return FlowContext(sessions=sessions, provider=provider, messenger=messenger)


@pytest.fixture
def dispatcher(ctx):
    return Dispatcher(ctx)


@pytest.fixture
def sent_texts(messenger):
    """Returns a callable listing the text of every message sent so far."""
    def _sent():
        return [c.args[1] for c in messenger.send_message.call_args_list]
    return _sent
