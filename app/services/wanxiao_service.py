"""
app/services/wanxiao_service.py

Purpose: Balance provider integration - Wanxiao smart electricity service

- Queries the rooms bound to a campus account
- Parses the doubly-encoded JSON response
- Every failure surfaces as BalanceProviderError with a readable reason
"""

import json
import math
import httpx
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import BalanceProviderError
from app.core.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class RoomBalance:
    """One room returned by the provider."""
    room_name: str
    balance: float


def build_timestamp(now: Optional[datetime] = None) -> str:
    """Provider timestamp format: YYYYMMDDhhmmss + milliseconds."""
    now = now or datetime.now()
    return f"{now:%Y%m%d%H%M%S}{now.microsecond // 1000:03d}"


class WanxiaoClient:
    """
    Client for the Wanxiao water & electricity servlet.
    Safe to call repeatedly - a query never changes provider state.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._api_url = api_url or settings.WANXIAO_API_URL
        self._timeout = timeout if timeout is not None else settings.WANXIAO_TIMEOUT
        self._transport = transport

    async def get_balance(self, account: str, customer_code: str) -> List[RoomBalance]:
        """
        Fetches the rooms and balances bound to an account.

        Args:
            account: Student / card number
            customer_code: School code

        Returns:
            List of rooms (possibly empty)

        Raises:
            BalanceProviderError: On network, HTTP, protocol or API errors
        """
        param = {
            "cmd": "getbindroom",
            "account": account,
            "timestamp": build_timestamp(),
        }
        form = {
            "param": json.dumps(param, separators=(",", ":")),
            "customercode": customer_code,
        }

        try:
            logger.debug(f"Querying balance for account {account}")

            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._api_url,
                    data=form,
                    headers={"User-Agent": USER_AGENT}
                )

        except httpx.TimeoutException:
            logger.error("Balance provider timeout")
            raise BalanceProviderError("request timed out")
        except httpx.RequestError as e:
            logger.error(f"Network error querying balance: {e}")
            raise BalanceProviderError(f"request error: {e}")

        if response.status_code != 200:
            logger.error(f"Balance query failed: HTTP {response.status_code}")
            raise BalanceProviderError(f"HTTP {response.status_code}")

        return self._parse_response(response.text)

    def _parse_response(self, text: str) -> List[RoomBalance]:
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise BalanceProviderError(f"unmarshal response error: {e}")

        if not isinstance(payload, dict):
            raise BalanceProviderError("unmarshal response error: unexpected payload")

        if payload.get("code_", 0) != 0:
            message = payload.get("message_") or "unknown error"
            logger.warning(f"Provider returned error: {message}")
            raise BalanceProviderError(f"api error: {message}")

        try:
            body: Dict[str, Any] = json.loads(payload.get("body") or "{}")
        except (TypeError, ValueError) as e:
            raise BalanceProviderError(f"unmarshal inner body error: {e}")

        if not isinstance(body, dict):
            raise BalanceProviderError("unmarshal inner body error: unexpected body")

        room_name = body.get("roomfullname") or ""
        rooms = []
        for detail in body.get("detaillist") or []:
            if not isinstance(detail, dict):
                continue
            try:
                balance = float(detail.get("odd"))
            except (TypeError, ValueError):
                balance = math.nan
            if not math.isfinite(balance):
                logger.warning(f"Skipping detail with unreadable balance: {detail!r}")
                continue
            rooms.append(RoomBalance(room_name=room_name, balance=balance))

        return rooms
