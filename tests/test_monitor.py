from datetime import timedelta

import pytest

from app.core.exceptions import BalanceProviderError
from app.services.binding_service import create_binding
from app.services.monitor_service import BalanceMonitor
from app.services.user_service import get_or_create_user, toggle_alert, update_threshold, update_check_interval
from app.services.wanxiao_service import RoomBalance
from utils.telegram_utils import PARSE_MODE_MARKDOWN_V2
from utils.time_utils import utcnow
from utils.validation_utils import MAX_CHECK_INTERVAL

USER_ID = 2002


@pytest.fixture
def monitor(provider, messenger):
    return BalanceMonitor(provider, messenger)


async def alert_user(user_id=USER_ID, threshold=10.0, interval=60):
    await get_or_create_user(user_id)
    await toggle_alert(user_id)
    await update_threshold(user_id, threshold)
    await update_check_interval(user_id, interval)


async def seed_binding(account="2021001", last_check=None, user_id=USER_ID):
    await create_binding(user_id, account, "SCHOOL01", "Old Room", 80.0, last_check)


@pytest.mark.asyncio
async def test_low_balance_sends_alert_and_refreshes_cache(db, monitor, provider, messenger):
    await alert_user()
    await seed_binding()
    provider.get_balance.return_value = [RoomBalance(room_name="Building 3 Room 402", balance=5.0)]
    now = utcnow()

    stats = await monitor.run_monitoring_pass(now)

    assert stats.checked == 1
    assert stats.alerts == 1
    messenger.send_message.assert_awaited_once()
    args, kwargs = messenger.send_message.call_args
    assert args[0] == USER_ID
    assert "Building 3 Room 402" in args[1]
    assert "`5.00`" in args[1]
    assert "`10.00`" in args[1]
    assert kwargs["parse_mode"] == PARSE_MODE_MARKDOWN_V2

    doc = await db["bindings"].find_one({"user_id": USER_ID})
    assert doc["room_name"] == "Building 3 Room 402"
    assert doc["last_balance"] == 5.0
    assert doc["last_check"] == now


@pytest.mark.asyncio
async def test_balance_at_threshold_does_not_alert(db, monitor, provider, messenger):
    await alert_user(threshold=10.0)
    await seed_binding()
    provider.get_balance.return_value = [RoomBalance(room_name="Room", balance=10.0)]

    stats = await monitor.run_monitoring_pass(utcnow())

    assert stats.checked == 1
    assert stats.alerts == 0
    messenger.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_second_pass_at_same_time_is_a_no_op(db, monitor, provider, messenger):
    await alert_user()
    await seed_binding()
    provider.get_balance.return_value = [RoomBalance(room_name="Room", balance=1.0)]
    now = utcnow()

    await monitor.run_monitoring_pass(now)
    stats = await monitor.run_monitoring_pass(now)

    assert stats.checked == 0
    assert stats.skipped == 1
    assert provider.get_balance.await_count == 1
    assert messenger.send_message.await_count == 1


@pytest.mark.asyncio
async def test_binding_not_due_is_skipped(db, monitor, provider):
    now = utcnow()
    await alert_user(interval=60)
    await seed_binding(last_check=now - timedelta(minutes=30))

    stats = await monitor.run_monitoring_pass(now)

    assert stats.skipped == 1
    provider.get_balance.assert_not_called()


@pytest.mark.asyncio
async def test_binding_due_after_interval(db, monitor, provider):
    now = utcnow()
    await alert_user(interval=60)
    await seed_binding(last_check=now - timedelta(minutes=60))

    stats = await monitor.run_monitoring_pass(now)

    assert stats.checked == 1
    provider.get_balance.assert_awaited_once_with("2021001", "SCHOOL01")


@pytest.mark.asyncio
async def test_alerts_disabled_user_is_not_checked(db, monitor, provider):
    await get_or_create_user(USER_ID)
    await seed_binding()

    stats = await monitor.run_monitoring_pass(utcnow())

    assert stats.users == 0
    provider.get_balance.assert_not_called()


@pytest.mark.asyncio
async def test_failure_keeps_binding_due_and_continues(db, monitor, provider, messenger):
    await alert_user()
    await seed_binding(account="broken")
    await seed_binding(account="healthy")

    async def get_balance(account, code):
        if account == "broken":
            raise BalanceProviderError("HTTP 503")
        return [RoomBalance(room_name="Room H", balance=2.0)]

    provider.get_balance.side_effect = get_balance
    now = utcnow()

    stats = await monitor.run_monitoring_pass(now)

    assert stats.failed == 1
    assert stats.checked == 1
    assert stats.alerts == 1

    broken = await db["bindings"].find_one({"account": "broken"})
    assert broken["last_check"] is None
    assert broken["room_name"] == "Old Room"

    healthy = await db["bindings"].find_one({"account": "healthy"})
    assert healthy["last_check"] == now


@pytest.mark.asyncio
async def test_unexpected_error_does_not_abort_pass(db, monitor, provider):
    await alert_user(user_id=1)
    await alert_user(user_id=2)
    await seed_binding(user_id=1)
    await seed_binding(user_id=2)

    provider.get_balance.side_effect = [RuntimeError("boom"), [RoomBalance(room_name="R", balance=50.0)]]

    stats = await monitor.run_monitoring_pass(utcnow())

    assert stats.failed == 1
    assert stats.checked == 1


@pytest.mark.asyncio
async def test_oversized_stored_interval_does_not_abort_pass(db, monitor, provider):
    now = utcnow()
    await alert_user(user_id=1)
    await alert_user(user_id=2)
    await db["users"].update_one({"user_id": 1}, {"$set": {"check_interval": 10**13}})
    await seed_binding(account="stale", user_id=1, last_check=now - timedelta(minutes=5))
    await seed_binding(account="fresh", user_id=2)
    provider.get_balance.return_value = [RoomBalance(room_name="R", balance=50.0)]

    stats = await monitor.run_monitoring_pass(now)

    assert stats.failed == 1
    assert stats.checked == 1
    provider.get_balance.assert_awaited_once_with("fresh", "SCHOOL01")


@pytest.mark.asyncio
async def test_update_check_interval_rejects_out_of_range(db):
    with pytest.raises(ValueError):
        await update_check_interval(USER_ID, MAX_CHECK_INTERVAL + 1)
    with pytest.raises(ValueError):
        await update_check_interval(USER_ID, 0)


@pytest.mark.asyncio
async def test_every_room_is_evaluated_and_last_write_wins(db, monitor, provider, messenger):
    await alert_user(threshold=10.0)
    await seed_binding()
    provider.get_balance.return_value = [
        RoomBalance(room_name="Room A", balance=3.0),
        RoomBalance(room_name="Room B", balance=4.0),
    ]

    stats = await monitor.run_monitoring_pass(utcnow())

    assert stats.alerts == 2
    doc = await db["bindings"].find_one({"user_id": USER_ID})
    assert doc["room_name"] == "Room B"
    assert doc["last_balance"] == 4.0


@pytest.mark.asyncio
async def test_zero_rooms_leaves_cache_untouched(db, monitor, provider):
    await alert_user()
    await seed_binding()
    provider.get_balance.return_value = []

    await monitor.run_monitoring_pass(utcnow())

    doc = await db["bindings"].find_one({"user_id": USER_ID})
    assert doc["last_check"] is None
    assert doc["last_balance"] == 80.0


def test_register_balance_monitor(provider, messenger):
    from app.core.scheduler import MONITOR_JOB_ID, create_scheduler, register_balance_monitor

    scheduler = create_scheduler()
    monitor = BalanceMonitor(provider, messenger)

    register_balance_monitor(scheduler, monitor, cron="*/5 * * * *")

    job = scheduler.get_job(MONITOR_JOB_ID)
    assert job is not None
    assert job.max_instances == 1
    assert job.coalesce is True
