"""
End-to-end conversation tests through the dispatcher.
"""

import asyncio

import pytest

from app.core.exceptions import BalanceProviderError
from app.flow.states import ConversationState
from app.schemas.webhook import UnifiedMessage
from app.services.binding_service import create_binding
from app.services.user_service import get_user_by_id, toggle_alert
from app.services.wanxiao_service import RoomBalance
from utils.constants import (
    ALREADY_BOUND_MESSAGE,
    BUTTON_ACCOUNTS,
    BUTTON_CHECK_BALANCE,
    BUTTON_SETTINGS,
    CALLBACK_ADD_ACCOUNT,
    CALLBACK_SET_INTERVAL,
    CALLBACK_SET_THRESHOLD,
    CALLBACK_TOGGLE_ALERT,
    CHECKING_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    INTERVAL_UPDATED_MESSAGE,
    INVALID_INTERVAL_MESSAGE,
    INVALID_NUMBER_MESSAGE,
    NO_BINDINGS_MESSAGE,
    NO_ROOMS_MESSAGE,
    SETTINGS_INIT_MESSAGE,
    SETTINGS_UPDATED_NOTICE,
    THRESHOLD_UPDATED_MESSAGE,
    VERIFY_FAILED_MESSAGE,
    VERIFYING_MESSAGE,
    WELCOME_MESSAGE,
)
from utils.time_utils import utcnow

USER_ID = 1001


def text_message(text, user_id=USER_ID):
    return UnifiedMessage(user_id=user_id, chat_id=user_id, text=text)


def callback(data, user_id=USER_ID):
    return UnifiedMessage(user_id=user_id, chat_id=user_id, callback_id="cb-1", callback_data=data)


async def bind(dispatcher, account="2021001", code="SCHOOL01"):
    await dispatcher.dispatch_message(callback(CALLBACK_ADD_ACCOUNT))
    await dispatcher.dispatch_message(text_message(account))
    await dispatcher.dispatch_message(text_message(code))


async def stored_bindings(db):
    return await db["bindings"].find({"user_id": USER_ID}).to_list(length=None)


# ============================================================
# START / MENU
# ============================================================

@pytest.mark.asyncio
async def test_start_creates_user_and_shows_menu(db, dispatcher, messenger, sessions):
    sessions.set_state(USER_ID, ConversationState.AWAIT_THRESHOLD)

    result = await dispatcher.dispatch_message(text_message("/start"))

    assert result["status"] == "success"
    assert sessions.get_state(USER_ID) == ConversationState.IDLE
    assert await get_user_by_id(USER_ID) is not None

    args, kwargs = messenger.send_message.call_args
    assert args[1] == WELCOME_MESSAGE
    assert "keyboard" in kwargs["reply_markup"]


@pytest.mark.asyncio
async def test_start_with_bot_suffix(db, dispatcher, sent_texts):
    await dispatcher.dispatch_message(text_message("/start@elec_bot"))
    assert sent_texts() == [WELCOME_MESSAGE]


@pytest.mark.asyncio
async def test_idle_free_text_is_ignored(db, dispatcher, messenger, sessions):
    handled = await dispatcher.handle_text(USER_ID, "hello there")

    assert handled is False
    assert sessions.get_state(USER_ID) == ConversationState.IDLE
    messenger.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_menu_button_overrides_pending_prompt(db, dispatcher, sessions):
    sessions.set_state(USER_ID, ConversationState.AWAIT_THRESHOLD)

    await dispatcher.dispatch_message(text_message(BUTTON_ACCOUNTS))

    assert sessions.get_state(USER_ID) == ConversationState.IDLE


# ============================================================
# BINDING FLOW
# ============================================================

@pytest.mark.asyncio
async def test_bind_flow_success(db, dispatcher, provider, messenger, sessions, sent_texts):
    await dispatcher.dispatch_message(callback(CALLBACK_ADD_ACCOUNT))
    assert sessions.get_state(USER_ID) == ConversationState.AWAIT_ACCOUNT
    messenger.answer_callback_query.assert_awaited_with("cb-1")

    await dispatcher.dispatch_message(text_message("2021001"))
    assert sessions.get_state(USER_ID) == ConversationState.AWAIT_CUSTOMER_CODE
    assert sessions.get_scratch(USER_ID, "account") == "2021001"

    await dispatcher.dispatch_message(text_message("SCHOOL01"))

    provider.get_balance.assert_awaited_once_with("2021001", "SCHOOL01")
    assert sessions.get_state(USER_ID) == ConversationState.IDLE
    assert not sessions.has_scratch(USER_ID)

    docs = await stored_bindings(db)
    assert len(docs) == 1
    assert docs[0]["account"] == "2021001"
    assert docs[0]["customer_code"] == "SCHOOL01"
    assert docs[0]["room_name"] == "Building 3 Room 402"
    assert docs[0]["last_balance"] == 55.5
    assert docs[0]["last_check"] is not None

    texts = sent_texts()
    assert VERIFYING_MESSAGE in texts
    assert "Building 3 Room 402" in texts[-1]
    assert "55.50" in texts[-1]


@pytest.mark.asyncio
async def test_bind_same_account_twice_is_rejected(db, dispatcher, provider, sessions, sent_texts):
    await bind(dispatcher)
    provider.get_balance.return_value = [RoomBalance(room_name="Other Room", balance=1.0)]

    await bind(dispatcher)

    assert sent_texts()[-1] == ALREADY_BOUND_MESSAGE
    assert sessions.get_state(USER_ID) == ConversationState.IDLE

    docs = await stored_bindings(db)
    assert len(docs) == 1
    assert docs[0]["room_name"] == "Building 3 Room 402"


@pytest.mark.asyncio
async def test_same_account_with_other_code_is_allowed(db, dispatcher):
    await bind(dispatcher, code="SCHOOL01")
    await bind(dispatcher, code="SCHOOL02")

    docs = await stored_bindings(db)
    assert {d["customer_code"] for d in docs} == {"SCHOOL01", "SCHOOL02"}


@pytest.mark.asyncio
async def test_bind_provider_failure(db, dispatcher, provider, sessions, sent_texts):
    provider.get_balance.side_effect = BalanceProviderError("api error: account not found")

    await bind(dispatcher)

    assert sent_texts()[-1] == VERIFY_FAILED_MESSAGE.format(reason="api error: account not found")
    assert sessions.get_state(USER_ID) == ConversationState.IDLE
    assert not sessions.has_scratch(USER_ID)
    assert await stored_bindings(db) == []


@pytest.mark.asyncio
async def test_bind_without_rooms(db, dispatcher, provider, sessions, sent_texts):
    provider.get_balance.return_value = []

    await bind(dispatcher)

    assert sent_texts()[-1] == NO_ROOMS_MESSAGE
    assert sessions.get_state(USER_ID) == ConversationState.IDLE
    assert await stored_bindings(db) == []


@pytest.mark.asyncio
async def test_unexpected_error_resets_user(db, dispatcher, provider, sessions, sent_texts):
    provider.get_balance.side_effect = RuntimeError("boom")

    await dispatcher.dispatch_message(callback(CALLBACK_ADD_ACCOUNT))
    await dispatcher.dispatch_message(text_message("2021001"))
    result = await dispatcher.dispatch_message(text_message("SCHOOL01"))

    assert result["status"] == "error"
    assert sent_texts()[-1] == GENERIC_ERROR_MESSAGE
    assert sessions.get_state(USER_ID) == ConversationState.IDLE
    assert not sessions.has_scratch(USER_ID)


# ============================================================
# SETTINGS
# ============================================================

@pytest.mark.asyncio
async def test_settings_view_initializes_missing_user(db, dispatcher, sent_texts):
    await dispatcher.dispatch_message(text_message(BUTTON_SETTINGS))

    texts = sent_texts()
    assert texts[0] == SETTINGS_INIT_MESSAGE
    assert "`10.00`" in texts[1]
    assert "`OFF`" in texts[1]
    assert "`60`" in texts[1]
    assert await get_user_by_id(USER_ID) is not None


@pytest.mark.asyncio
async def test_settings_view_existing_user_has_no_notice(db, dispatcher, sent_texts):
    await dispatcher.dispatch_message(text_message("/start"))
    await dispatcher.dispatch_message(text_message(BUTTON_SETTINGS))

    assert SETTINGS_INIT_MESSAGE not in sent_texts()


@pytest.mark.asyncio
async def test_toggle_alert(db, dispatcher, messenger, sent_texts):
    await dispatcher.dispatch_message(callback(CALLBACK_TOGGLE_ALERT))

    user = await get_user_by_id(USER_ID)
    assert user.alert_enabled is True
    messenger.answer_callback_query.assert_awaited_once_with("cb-1", SETTINGS_UPDATED_NOTICE)
    assert "`ON`" in sent_texts()[-1]

    await dispatcher.dispatch_message(callback(CALLBACK_TOGGLE_ALERT))
    user = await get_user_by_id(USER_ID)
    assert user.alert_enabled is False


@pytest.mark.asyncio
async def test_overlapping_toggles_each_flip_once(db):
    results = await asyncio.gather(toggle_alert(USER_ID), toggle_alert(USER_ID))

    assert sorted(user.alert_enabled for user in results) == [False, True]
    user = await get_user_by_id(USER_ID)
    assert user.alert_enabled is False


@pytest.mark.asyncio
async def test_toggle_does_not_touch_pending_prompt(db, dispatcher, sessions):
    sessions.set_state(USER_ID, ConversationState.AWAIT_INTERVAL)

    await dispatcher.dispatch_message(callback(CALLBACK_TOGGLE_ALERT))

    assert sessions.get_state(USER_ID) == ConversationState.AWAIT_INTERVAL


@pytest.mark.asyncio
async def test_threshold_update(db, dispatcher, sessions, sent_texts):
    await dispatcher.dispatch_message(callback(CALLBACK_SET_THRESHOLD))
    assert sessions.get_state(USER_ID) == ConversationState.AWAIT_THRESHOLD

    await dispatcher.dispatch_message(text_message("abc"))
    assert sent_texts()[-1] == INVALID_NUMBER_MESSAGE
    assert sessions.get_state(USER_ID) == ConversationState.AWAIT_THRESHOLD
    assert await get_user_by_id(USER_ID) is None

    await dispatcher.dispatch_message(text_message("7.5"))
    assert sessions.get_state(USER_ID) == ConversationState.IDLE
    assert THRESHOLD_UPDATED_MESSAGE in sent_texts()
    assert "`7.50`" in sent_texts()[-1]

    user = await get_user_by_id(USER_ID)
    assert user.notify_threshold == 7.5


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_input", [
    "0", "-5", "1.5", "soon", "525601", "10000000000000", "99999999999999999999"
])
async def test_interval_rejects_invalid_input(db, dispatcher, sessions, sent_texts, bad_input):
    await dispatcher.dispatch_message(callback(CALLBACK_SET_INTERVAL))

    await dispatcher.dispatch_message(text_message(bad_input))

    assert sent_texts()[-1] == INVALID_INTERVAL_MESSAGE
    assert sessions.get_state(USER_ID) == ConversationState.AWAIT_INTERVAL
    assert await get_user_by_id(USER_ID) is None


@pytest.mark.asyncio
async def test_interval_update(db, dispatcher, sessions, sent_texts):
    await dispatcher.dispatch_message(callback(CALLBACK_SET_INTERVAL))
    await dispatcher.dispatch_message(text_message("45"))

    assert sessions.get_state(USER_ID) == ConversationState.IDLE
    assert INTERVAL_UPDATED_MESSAGE in sent_texts()

    user = await get_user_by_id(USER_ID)
    assert user.check_interval == 45


# ============================================================
# BALANCE CHECK
# ============================================================

@pytest.mark.asyncio
async def test_check_balance_without_bindings(db, dispatcher, provider, sent_texts):
    await dispatcher.dispatch_message(text_message(BUTTON_CHECK_BALANCE))

    assert sent_texts() == [NO_BINDINGS_MESSAGE]
    provider.get_balance.assert_not_called()


@pytest.mark.asyncio
async def test_check_balance_reports_and_refreshes_cache(db, dispatcher, provider, messenger, sent_texts):
    await create_binding(USER_ID, "2021001", "SCHOOL01", "Old Room", 99.0, utcnow())
    await create_binding(USER_ID, "2021002", "SCHOOL01", "Room B", 20.0, utcnow())

    async def get_balance(account, code):
        if account == "2021002":
            raise BalanceProviderError("request timed out")
        return [RoomBalance(room_name="Building 3 Room 402", balance=12.25)]

    provider.get_balance.side_effect = get_balance

    await dispatcher.dispatch_message(text_message(BUTTON_CHECK_BALANCE))

    texts = sent_texts()
    assert texts[0] == CHECKING_MESSAGE
    messenger.delete_message.assert_awaited_once_with(USER_ID, 77)

    report = texts[-1]
    assert "Building 3 Room 402" in report
    assert "`12.25`" in report
    assert "`2021002`" in report
    assert "request timed out" in report

    doc = await db["bindings"].find_one({"account": "2021001"})
    assert doc["room_name"] == "Building 3 Room 402"
    assert doc["last_balance"] == 12.25

    failed = await db["bindings"].find_one({"account": "2021002"})
    assert failed["last_balance"] == 20.0
