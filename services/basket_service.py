"""
Basket service: pending need selections per user.

Every mutation re-reads the need and checks the resulting line quantity
against what is still available before writing.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import structlog

from config import get_supabase_client
from models.basket import BasketItemResponse
from services.user_service import get_user_service
from exceptions import (
    BasketItemNotFoundError,
    NeedNotFoundError,
    NeedFullyFundedError,
    InsufficientQuantityError,
    DatabaseError
)

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def line_total(cost, quantity: int) -> float:
    """cost × quantity rounded to cents."""
    amount = Decimal(str(cost or 0)) * quantity
    return float(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def available_quantity(need: dict) -> int:
    return max(0, (need.get("quantity") or 0) - (need.get("quantity_fulfilled") or 0))


class BasketService:
    """
    Basket business logic.

    Handles add / update / remove / clear for basket lines.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "baskets"
        self.user_service = get_user_service()

    # ===================
    # HELPERS
    # ===================

    def _get_need_row(self, need_id: int) -> Optional[dict]:
        try:
            result = (
                self.db.table("needs")
                .select("*")
                .eq("id", need_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_basket_need_failed", need_id=need_id, error=str(e))
            raise DatabaseError("select", str(e))
        return result.data[0] if result.data else None

    def _get_line(self, item_id: int) -> dict:
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", item_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_basket_item_failed", item_id=item_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise BasketItemNotFoundError(item_id)
        return result.data[0]

    def _to_response(self, line: dict, need: Optional[dict], usernames: dict) -> BasketItemResponse:
        need = need or {}
        return BasketItemResponse(
            basket_id=line["id"],
            user_id=line["user_id"],
            need_id=line["need_id"],
            basket_quantity=line["quantity"],
            added_at=line.get("added_at"),
            title=need.get("title"),
            description=need.get("description"),
            cost=need.get("cost") or 0,
            total_quantity=need.get("quantity") or 0,
            quantity_fulfilled=need.get("quantity_fulfilled") or 0,
            priority=need.get("priority"),
            category=need.get("category"),
            manager_username=usernames.get(need.get("manager_id")),
            available_quantity=available_quantity(need),
            item_total=line_total(need.get("cost"), line["quantity"]),
        )

    def _build_item(self, line: dict) -> BasketItemResponse:
        need = self._get_need_row(line["need_id"])
        usernames = self.user_service.get_usernames({need.get("manager_id")} if need else set())
        return self._to_response(line, need, usernames)

    # ===================
    # READ OPERATIONS
    # ===================

    def get_lines(self, user_id: int) -> list[dict]:
        """Raw basket rows for a user, oldest first (checkout order)."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("user_id", user_id)
                .order("id")
                .execute()
            )
        except Exception as e:
            logger.error("get_basket_lines_failed", user_id=user_id, error=str(e))
            raise DatabaseError("select", str(e))
        return result.data

    def get_basket(self, user_id: int) -> tuple[list[BasketItemResponse], float]:
        """
        Get a user's basket with need details and total.

        Returns:
            Tuple of (items newest first, total cost)
        """
        logger.info("getting_basket", user_id=user_id)

        lines = self.get_lines(user_id)
        if not lines:
            return [], 0.0

        need_ids = sorted({line["need_id"] for line in lines})
        try:
            result = (
                self.db.table("needs")
                .select("*")
                .in_("id", need_ids)
                .execute()
            )
        except Exception as e:
            logger.error("get_basket_needs_failed", user_id=user_id, error=str(e))
            raise DatabaseError("select", str(e))

        needs = {row["id"]: row for row in result.data}
        usernames = self.user_service.get_usernames(
            {row.get("manager_id") for row in needs.values()}
        )

        items = [
            self._to_response(line, needs.get(line["need_id"]), usernames)
            for line in reversed(lines)
        ]
        total = float(sum(Decimal(str(item.item_total)) for item in items))

        logger.info("basket_retrieved", user_id=user_id, count=len(items), total=total)
        return items, round(total, 2)

    # ===================
    # WRITE OPERATIONS
    # ===================

    def add_item(self, user_id: int, need_id: int, quantity: int) -> tuple[BasketItemResponse, bool]:
        """
        Add a need to a basket, combining with an existing line.

        Args:
            user_id: Helper
            need_id: Need to add
            quantity: Units to add (> 0)

        Returns:
            Tuple of (line, created)

        Raises:
            UserNotFoundError: If user doesn't exist
            NeedNotFoundError: If need doesn't exist
            NeedFullyFundedError: If nothing is left to fund
            InsufficientQuantityError: If the combined quantity is too large
        """
        logger.info("adding_to_basket", user_id=user_id, need_id=need_id, quantity=quantity)

        self.user_service.get_by_id(user_id)

        need = self._get_need_row(need_id)
        if not need:
            raise NeedNotFoundError(need_id)

        available = available_quantity(need)
        if available <= 0:
            raise NeedFullyFundedError(need_id, need.get("title"))

        try:
            existing = (
                self.db.table(self.table)
                .select("*")
                .eq("user_id", user_id)
                .eq("need_id", need_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_basket_line_failed", user_id=user_id, need_id=need_id, error=str(e))
            raise DatabaseError("select", str(e))

        if existing.data:
            line = existing.data[0]
            new_total = line["quantity"] + quantity
            if new_total > available:
                raise InsufficientQuantityError(
                    need_id, new_total, available, need.get("title"), in_basket=line["quantity"]
                )
            try:
                result = (
                    self.db.table(self.table)
                    .update({"quantity": new_total})
                    .eq("id", line["id"])
                    .execute()
                )
            except Exception as e:
                logger.error("update_basket_line_failed", item_id=line["id"], error=str(e))
                raise DatabaseError("update", str(e))
            created = False
        else:
            if quantity > available:
                raise InsufficientQuantityError(need_id, quantity, available, need.get("title"))
            try:
                result = (
                    self.db.table(self.table)
                    .insert({"user_id": user_id, "need_id": need_id, "quantity": quantity})
                    .execute()
                )
            except Exception as e:
                logger.error("insert_basket_line_failed", user_id=user_id, need_id=need_id, error=str(e))
                raise DatabaseError("insert", str(e))
            created = True

        line = result.data[0]
        logger.info(
            "basket_line_saved",
            item_id=line["id"],
            quantity=line["quantity"],
            created=created
        )
        usernames = self.user_service.get_usernames({need.get("manager_id")})
        return self._to_response(line, need, usernames), created

    def update_item(self, item_id: int, quantity: int) -> BasketItemResponse:
        """
        Set a basket line to an absolute quantity.

        Raises:
            BasketItemNotFoundError: If line doesn't exist
            NeedNotFoundError: If the need is gone
            InsufficientQuantityError: If quantity exceeds what is available
        """
        logger.info("updating_basket_item", item_id=item_id, quantity=quantity)

        line = self._get_line(item_id)
        need = self._get_need_row(line["need_id"])
        if not need:
            raise NeedNotFoundError(line["need_id"])

        available = available_quantity(need)
        if quantity > available:
            raise InsufficientQuantityError(line["need_id"], quantity, available, need.get("title"))

        try:
            result = (
                self.db.table(self.table)
                .update({"quantity": quantity})
                .eq("id", item_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_basket_item_failed", item_id=item_id, error=str(e))
            raise DatabaseError("update", str(e))

        logger.info("basket_item_updated", item_id=item_id, quantity=quantity)
        return self._build_item(result.data[0])

    def remove_item(self, item_id: int) -> bool:
        """
        Remove one basket line.

        Raises:
            BasketItemNotFoundError: If line doesn't exist
        """
        logger.info("removing_basket_item", item_id=item_id)

        self._get_line(item_id)

        try:
            self.db.table(self.table).delete().eq("id", item_id).execute()
        except Exception as e:
            logger.error("remove_basket_item_failed", item_id=item_id, error=str(e))
            raise DatabaseError("delete", str(e))

        return True

    def clear(self, user_id: int) -> int:
        """Delete every line in a user's basket; returns how many were removed."""
        logger.info("clearing_basket", user_id=user_id)

        try:
            result = self.db.table(self.table).delete().eq("user_id", user_id).execute()
        except Exception as e:
            logger.error("clear_basket_failed", user_id=user_id, error=str(e))
            raise DatabaseError("delete", str(e))

        removed = len(result.data or [])
        logger.info("basket_cleared", user_id=user_id, items_removed=removed)
        return removed


# Singleton instance for convenience
_basket_service: Optional[BasketService] = None


def get_basket_service() -> BasketService:
    """Get or create BasketService instance."""
    global _basket_service
    if _basket_service is None:
        _basket_service = BasketService()
    return _basket_service
