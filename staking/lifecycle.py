"""Lock-period arithmetic for stakes."""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

LOCKED = 'locked'
UNLOCKED = 'unlocked'

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def compute_unlock_at(staked_at: datetime, lock_period_days: int) -> datetime:
    """Time at which a stake created at ``staked_at`` may be withdrawn."""
    return staked_at + timedelta(days=lock_period_days)

def is_unlocked(stake: Any, now: Optional[datetime] = None) -> bool:
    """A stake is withdrawable once flagged unlocked or once its unlock time has passed."""
    now = now or utcnow()
    return bool(stake['is_unlocked']) or now >= stake['unlock_at']

def stake_status(stake: Any, now: Optional[datetime] = None) -> str:
    return UNLOCKED if is_unlocked(stake, now) else LOCKED
