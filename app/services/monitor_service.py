"""
app/services/monitor_service.py

Purpose: Periodic low-balance monitoring

- Loads alert-enabled users and their bindings in one batch
- Checks only bindings whose per-user interval has elapsed
- Sends a low-balance alert per room below the user's threshold
- Refreshes the binding cache after every successful query
- A failing binding is logged and retried on the next tick
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.models.binding import Binding
from app.models.user import User
from app.services.binding_service import get_bindings_for_users, update_binding_cache
from app.services.telegram_service import TelegramService
from app.services.user_service import get_alert_enabled_users
from app.services.wanxiao_service import WanxiaoClient
from app.core.exceptions import BalanceProviderError
from app.core.logging import get_logger, LogContext
from utils.constants import LOW_BALANCE_ALERT_MD
from utils.telegram_utils import (
    PARSE_MODE_MARKDOWN_V2,
    escape_markdown_v2,
    escape_markdown_v2_code,
    format_amount,
)
from utils.time_utils import utcnow, is_check_due

logger = get_logger(__name__)


@dataclass
class MonitoringStats:
    users: int = 0
    checked: int = 0
    skipped: int = 0
    failed: int = 0
    alerts: int = 0


class BalanceMonitor:
    """Runs monitoring passes over all alert-enabled users"""

    def __init__(self, provider: WanxiaoClient, messenger: TelegramService):
        self.provider = provider
        self.messenger = messenger

    async def run_monitoring_pass(self, now: Optional[datetime] = None) -> MonitoringStats:
        """
        Performs one monitoring tick.

        Args:
            now: Tick time (defaults to the current UTC time)

        Returns:
            Counters for the pass
        """
        now = now or utcnow()
        stats = MonitoringStats()

        try:
            users = await get_alert_enabled_users()
            bindings_by_user = await get_bindings_for_users(user.user_id for user in users)
        except Exception as e:
            logger.error(f"❌ Could not load monitoring batch: {e}", exc_info=True)
            return stats
        stats.users = len(users)

        for user in users:
            if not user.alert_enabled:
                continue

            for binding in bindings_by_user.get(user.user_id, []):
                with LogContext(user_id=user.user_id, account=binding.account):
                    try:
                        if not is_check_due(binding.last_check, user.check_interval, now):
                            stats.skipped += 1
                            continue

                        stats.alerts += await self._check_binding(user, binding, now)
                        stats.checked += 1
                    except BalanceProviderError as e:
                        stats.failed += 1
                        logger.warning(f"Balance check failed: {e.message}")
                    except Exception as e:
                        stats.failed += 1
                        logger.error(f"Unexpected error checking binding: {e}", exc_info=True)

        if stats.checked or stats.failed:
            logger.info(
                f"🔁 Monitoring pass: {stats.users} users, {stats.checked} checked, "
                f"{stats.skipped} not due, {stats.failed} failed, {stats.alerts} alerts"
            )
        return stats

    async def _check_binding(self, user: User, binding: Binding, now: datetime) -> int:
        rooms = await self.provider.get_balance(binding.account, binding.customer_code)

        alerts = 0
        for room in rooms:
            if room.balance < user.notify_threshold:
                await self._send_alert(user, room.room_name, room.balance)
                alerts += 1

            await update_binding_cache(binding.id, room.room_name, room.balance, now)

        return alerts

    async def _send_alert(self, user: User, room_name: str, balance: float) -> None:
        text = LOW_BALANCE_ALERT_MD.format(
            room=escape_markdown_v2(room_name),
            balance=escape_markdown_v2_code(format_amount(balance)),
            threshold=escape_markdown_v2_code(format_amount(user.notify_threshold))
        )

        result = await self.messenger.send_message(
            user.user_id,
            text,
            parse_mode=PARSE_MODE_MARKDOWN_V2
        )
        if result.get("success"):
            logger.info(f"⚠️ Low balance alert sent for {room_name}")
        else:
            logger.error(f"❌ Failed to deliver alert: {result.get('error')}")
