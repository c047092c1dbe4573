"""Client-side session state and the low-balance notice rule."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


LOW_BALANCE_SNOOZE = timedelta(hours=24)


@dataclass
class SessionContext:
    """Bearer token plus the last time the low-balance notice was dismissed."""

    token: Optional[str] = None
    low_balance_dismissed_at: Optional[datetime] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def auth_headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def dismiss_low_balance(self, now: datetime) -> None:
        self.low_balance_dismissed_at = now

    def clear(self) -> None:
        self.token = None
        self.low_balance_dismissed_at = None


def should_show_low_balance(last_dismissed_at: Optional[datetime], now: datetime) -> bool:
    """A dismissed notice stays hidden for 24 hours, then shows again."""
    if last_dismissed_at is None:
        return True
    return now - last_dismissed_at >= LOW_BALANCE_SNOOZE


def low_balance_notice(balance: dict, session: SessionContext, now: datetime) -> Optional[str]:
    """
    Text of the low-balance notice, or None when nothing should be shown.

    Args:
        balance: body of ``GET /api/credits/balance``
        session: current session, for the dismissal timestamp
        now: current time
    """
    if not balance.get("is_low"):
        return None
    if not should_show_low_balance(session.low_balance_dismissed_at, now):
        return None

    current = float(balance.get("current_balance", 0))
    message = f"Low Credit Balance: Your current balance is ${current:,.2f}."
    if current <= 0:
        return f"{message} You need to add credits to continue using the service."
    return f"{message} This is below the {balance.get('low_balance_threshold')}% threshold."
