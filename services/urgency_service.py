"""
Urgency scoring: core ranking logic for needs.

Score = priority weight
      + deadline proximity bonus
      + low inventory bonus
      + perishable bonus
      + min(request_count * 5, 25)
      + service bonus

Everything here is a pure function of its arguments; callers pass `today`
so results are reproducible.
"""

from datetime import date
from math import ceil
from typing import Optional, Sequence
import structlog

from config import settings
from models.need import NeedResponse, NeedSort

logger = structlog.get_logger(__name__)


# ===================
# WEIGHTS
# ===================

PRIORITY_WEIGHTS = {
    "urgent": 60,
    "high": 40,
    "normal": 20,
}
UNKNOWN_PRIORITY_WEIGHT = 10

PRIORITY_RANK = {
    "urgent": 1,
    "high": 2,
    "normal": 3,
}
UNKNOWN_PRIORITY_RANK = 4

# (max days until due, bonus), checked in order
DEADLINE_BONUSES = (
    (0, 35),
    (3, 30),
    (7, 20),
    (14, 10),
)

LOW_INVENTORY_RATIO = 0.25
LOW_INVENTORY_BONUS = 10
PERISHABLE_BONUS = 15
SERVICE_BONUS = 10
REQUEST_WEIGHT = 5
REQUEST_CAP = 25


def _priority_key(priority) -> str:
    return str(getattr(priority, "value", priority) or "").lower()


def priority_weight(priority) -> int:
    """Base weight for a priority; unknown values get the fallback."""
    return PRIORITY_WEIGHTS.get(_priority_key(priority), UNKNOWN_PRIORITY_WEIGHT)


def priority_rank(priority) -> int:
    return PRIORITY_RANK.get(_priority_key(priority), UNKNOWN_PRIORITY_RANK)


def days_until(needed_by: Optional[date], today: date) -> Optional[int]:
    """Whole days from today to the deadline (negative when overdue)."""
    if needed_by is None:
        return None
    return (needed_by - today).days


def deadline_bonus(days_until_due: Optional[int]) -> int:
    """
    Bonus for deadline proximity.

    Examples:
        >>> deadline_bonus(-2)
        35
        >>> deadline_bonus(5)
        20
        >>> deadline_bonus(None)
        0
    """
    if days_until_due is None:
        return 0
    for max_days, bonus in DEADLINE_BONUSES:
        if days_until_due <= max_days:
            return bonus
    return 0


def remaining_quantity(quantity: int, quantity_fulfilled: int) -> int:
    """Units still open, never negative."""
    return max(0, (quantity or 0) - (quantity_fulfilled or 0))


def low_inventory_bonus(quantity: int, quantity_fulfilled: int) -> int:
    """10 when something is left but no more than a quarter (rounded up)."""
    remaining = remaining_quantity(quantity, quantity_fulfilled)
    threshold = ceil(LOW_INVENTORY_RATIO * (quantity or 0))
    if 0 < remaining <= threshold:
        return LOW_INVENTORY_BONUS
    return 0


def calculate_urgency_score(
    priority,
    needed_by: Optional[date],
    quantity: int,
    quantity_fulfilled: int,
    is_perishable: bool = False,
    request_count: int = 0,
    service_required: bool = False,
    today: Optional[date] = None,
) -> int:
    """
    Calculate the urgency score for one need.

    Args:
        priority: urgent / high / normal (anything else scores as unknown)
        needed_by: Deadline, or None
        quantity: Total units needed
        quantity_fulfilled: Units already funded
        is_perishable: Perishable goods flag
        request_count: Historical request frequency
        service_required: Volunteer service flag
        today: Reference date (defaults to date.today())

    Returns:
        Integer score; higher is more urgent

    Example:
        urgent, due in 2 days, 1 of 10 left, perishable, 3 requests, service
        -> 60 + 30 + 10 + 15 + 15 + 10 = 140
    """
    today = today or date.today()

    score = priority_weight(priority)
    score += deadline_bonus(days_until(needed_by, today))
    score += low_inventory_bonus(quantity, quantity_fulfilled)
    if is_perishable:
        score += PERISHABLE_BONUS
    score += min(max(request_count or 0, 0) * REQUEST_WEIGHT, REQUEST_CAP)
    if service_required:
        score += SERVICE_BONUS

    return score


def score_need(need: NeedResponse, today: Optional[date] = None) -> NeedResponse:
    """Return a copy of the need with days_until_due and urgency_score filled in."""
    today = today or date.today()
    return need.model_copy(update={
        "days_until_due": days_until(need.needed_by, today),
        "urgency_score": calculate_urgency_score(
            priority=need.priority,
            needed_by=need.needed_by,
            quantity=need.quantity,
            quantity_fulfilled=need.quantity_fulfilled,
            is_perishable=need.is_perishable,
            request_count=need.request_count,
            service_required=need.service_required,
            today=today,
        ),
    })


# ===================
# ORDERING
# ===================

def _deadline_key(need: NeedResponse) -> tuple:
    # Undated needs sort after every dated one
    if need.needed_by is None:
        return (1, date.max)
    return (0, need.needed_by)


def _created_key(need: NeedResponse) -> float:
    return need.created_at.timestamp() if need.created_at else 0.0


SORT_KEYS = {
    NeedSort.URGENCY: lambda n: (-n.urgency_score, _deadline_key(n), n.id),
    NeedSort.DEADLINE: lambda n: (_deadline_key(n), -n.urgency_score, n.id),
    NeedSort.REQUESTS: lambda n: (-n.request_count, -n.urgency_score, n.id),
    NeedSort.PRIORITY: lambda n: (priority_rank(n.priority), -n.urgency_score, n.id),
    NeedSort.NEWEST: lambda n: (-_created_key(n), n.id),
}


def sort_needs(needs: Sequence[NeedResponse], sort: NeedSort = NeedSort.URGENCY) -> list[NeedResponse]:
    """
    Order scored needs by one of the sort strategies.

    Every strategy ends with the id so the order is total.
    """
    key = SORT_KEYS[NeedSort(sort)]
    return sorted(needs, key=key)


def is_time_sensitive(need: NeedResponse) -> bool:
    """
    Time-sensitive when any of:
        - urgency score at or above the threshold
        - dated and due within time_sensitive_due_days (overdue included)
        - perishable and undated, or due within perishable_window_days
    """
    if need.urgency_score >= settings.time_sensitive_score_threshold:
        return True

    days = need.days_until_due
    if days is not None and days <= settings.time_sensitive_due_days:
        return True

    if need.is_perishable and (days is None or days <= settings.perishable_window_days):
        return True

    return False


def filter_time_sensitive(needs: Sequence[NeedResponse]) -> list[NeedResponse]:
    kept = [n for n in needs if is_time_sensitive(n)]
    logger.debug("time_sensitive_filtered", total=len(needs), kept=len(kept))
    return kept
