"""
Funding service: checkout reconciliation and funding history.

Checkout runs in two phases:

    1. Validate every basket line against a fresh read of its need.
       Nothing is written; the first bad line aborts the checkout.
    2. Commit line by line in basket order. quantity_fulfilled is advanced
       with a compare-and-swap on the value read in phase 1, then the
       funding record is inserted. If a swap loses or a write fails, the
       lines already applied are compensated before the error propagates.

The basket is deleted only after every line has committed.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
import structlog

from config import get_supabase_client
from models.funding import FundingRecordResponse
from services.basket_service import get_basket_service, line_total, available_quantity
from services.user_service import get_user_service
from exceptions import (
    AppError,
    NeedNotFoundError,
    NeedFullyFundedError,
    InsufficientQuantityError,
    EmptyBasketError,
    CheckoutConflictError,
    DatabaseError
)

logger = structlog.get_logger(__name__)

COMPENSATION_RETRIES = 3


@dataclass
class CheckoutLine:
    """A validated basket line ready to commit."""
    basket_id: int
    need: dict
    quantity: int

    @property
    def need_id(self) -> int:
        return self.need["id"]

    @property
    def expected_fulfilled(self) -> int:
        return self.need.get("quantity_fulfilled") or 0

    @property
    def amount(self) -> float:
        return line_total(self.need.get("cost"), self.quantity)


@dataclass
class AppliedLine:
    """A committed line, kept so it can be undone."""
    need_id: int
    fulfilled_before: int
    fulfilled_after: int
    funding_id: Optional[int] = None

    @property
    def quantity(self) -> int:
        return self.fulfilled_after - self.fulfilled_before


@dataclass
class CheckoutResult:
    records: list[FundingRecordResponse] = field(default_factory=list)
    total_amount: float = 0.0

    @property
    def items_processed(self) -> int:
        return len(self.records)


class FundingService:
    """
    Checkout and funding history.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "funding"
        self.basket_service = get_basket_service()
        self.user_service = get_user_service()

    # ===================
    # HELPERS
    # ===================

    def _needs_by_id(self, need_ids: set[int]) -> dict[int, dict]:
        ids = sorted(i for i in need_ids if i is not None)
        if not ids:
            return {}
        try:
            result = (
                self.db.table("needs")
                .select("*")
                .in_("id", ids)
                .execute()
            )
        except Exception as e:
            logger.error("get_funding_needs_failed", count=len(ids), error=str(e))
            raise DatabaseError("select", str(e))
        return {row["id"]: row for row in result.data}

    def _usernames_for(self, rows: list[dict], needs: dict[int, dict]) -> dict[int, str]:
        user_ids = {row.get("user_id") for row in rows}
        user_ids |= {need.get("manager_id") for need in needs.values()}
        return self.user_service.get_usernames(user_ids)

    def _to_responses(
        self,
        rows: list[dict],
        needs: Optional[dict[int, dict]] = None,
        usernames: Optional[dict[int, str]] = None
    ) -> list[FundingRecordResponse]:
        """Join funding rows with need summary, helper and manager usernames."""
        if needs is None:
            needs = self._needs_by_id({row.get("need_id") for row in rows})
        if usernames is None:
            usernames = self._usernames_for(rows, needs)

        records = []
        for row in rows:
            need = needs.get(row.get("need_id"), {})
            records.append(FundingRecordResponse(
                funding_id=row["id"],
                user_id=row.get("user_id"),
                need_id=row.get("need_id"),
                quantity=row["quantity"],
                amount=row["amount"],
                funded_at=row.get("funded_at"),
                title=need.get("title"),
                description=need.get("description"),
                cost=need.get("cost"),
                priority=need.get("priority"),
                category=need.get("category"),
                helper_username=usernames.get(row.get("user_id")),
                manager_username=usernames.get(need.get("manager_id")),
            ))
        return records

    @staticmethod
    def _sum_amounts(records: list[FundingRecordResponse]) -> float:
        total = sum((Decimal(str(r.amount)) for r in records), Decimal("0"))
        return round(float(total), 2)

    # ===================
    # CHECKOUT
    # ===================

    def validate_basket(self, user_id: int) -> list[CheckoutLine]:
        """
        Phase 1: check every basket line against live availability.

        Raises:
            EmptyBasketError: If the basket has no lines
            NeedNotFoundError: If a basketed need no longer exists
            NeedFullyFundedError: If a basketed need has nothing left
            InsufficientQuantityError: If a line asks for more than is left
        """
        lines = self.basket_service.get_lines(user_id)
        if not lines:
            raise EmptyBasketError(user_id)

        needs = self._needs_by_id({line["need_id"] for line in lines})

        validated = []
        for line in lines:
            need = needs.get(line["need_id"])
            if need is None:
                raise NeedNotFoundError(line["need_id"])

            available = available_quantity(need)
            if available <= 0:
                raise NeedFullyFundedError(need["id"], need.get("title"))
            if line["quantity"] > available:
                raise InsufficientQuantityError(
                    need["id"], line["quantity"], available, need.get("title")
                )

            validated.append(CheckoutLine(basket_id=line["id"], need=need, quantity=line["quantity"]))

        logger.info("checkout_validated", user_id=user_id, lines=len(validated))
        return validated

    def _advance_fulfilled(self, line: CheckoutLine) -> AppliedLine:
        """Compare-and-swap quantity_fulfilled from the validated value."""
        before = line.expected_fulfilled
        after = before + line.quantity

        result = (
            self.db.table("needs")
            .update({"quantity_fulfilled": after})
            .eq("id", line.need_id)
            .eq("quantity_fulfilled", before)
            .execute()
        )
        if not result.data:
            logger.warning(
                "checkout_cas_lost",
                need_id=line.need_id,
                expected_fulfilled=before
            )
            raise CheckoutConflictError(line.need_id, before)

        return AppliedLine(need_id=line.need_id, fulfilled_before=before, fulfilled_after=after)

    def _swap_fulfilled(self, need_id: int, expected: int, value: int) -> bool:
        result = (
            self.db.table("needs")
            .update({"quantity_fulfilled": value})
            .eq("id", need_id)
            .eq("quantity_fulfilled", expected)
            .execute()
        )
        return bool(result.data)

    def _restore_fulfilled(self, entry: AppliedLine) -> bool:
        """
        Take a line's quantity back off quantity_fulfilled.

        Tries the exact value written at commit first. If another checkout
        has moved the counter since, subtracts from a fresh read instead.
        """
        if self._swap_fulfilled(entry.need_id, entry.fulfilled_after, entry.fulfilled_before):
            return True

        for attempt in range(COMPENSATION_RETRIES):
            logger.warning(
                "checkout_compensation_conflict",
                need_id=entry.need_id,
                expected_fulfilled=entry.fulfilled_after,
                attempt=attempt + 1
            )
            need = self._needs_by_id({entry.need_id}).get(entry.need_id)
            if need is None:
                return True
            current = need.get("quantity_fulfilled") or 0
            if self._swap_fulfilled(entry.need_id, current, max(current - entry.quantity, 0)):
                return True
        return False

    def _compensate(self, applied: list[AppliedLine]) -> None:
        """Undo committed lines, newest first. Failures are logged and skipped."""
        for entry in reversed(applied):
            try:
                if entry.funding_id is not None:
                    self.db.table(self.table).delete().eq("id", entry.funding_id).execute()
                if not self._restore_fulfilled(entry):
                    logger.error(
                        "checkout_compensation_failed",
                        need_id=entry.need_id,
                        funding_id=entry.funding_id,
                        error="quantity_fulfilled kept moving"
                    )
                    continue
                logger.info("checkout_line_compensated", need_id=entry.need_id)
            except Exception as e:
                logger.error(
                    "checkout_compensation_failed",
                    need_id=entry.need_id,
                    funding_id=entry.funding_id,
                    error=str(e)
                )

    def checkout(self, user_id: int) -> CheckoutResult:
        """
        Convert a user's basket into funding records.

        Args:
            user_id: Helper checking out

        Returns:
            CheckoutResult with created records and total

        Raises:
            EmptyBasketError, NeedNotFoundError, NeedFullyFundedError,
            InsufficientQuantityError: Validation failed, nothing written
            CheckoutConflictError: A need moved during commit, applied lines undone
            DatabaseError: A write failed, applied lines undone
        """
        logger.info("checkout_started", user_id=user_id)

        lines = self.validate_basket(user_id)

        applied: list[AppliedLine] = []
        created_rows: list[dict] = []
        total = Decimal("0")

        try:
            for line in lines:
                entry = self._advance_fulfilled(line)
                applied.append(entry)

                amount = line.amount
                result = (
                    self.db.table(self.table)
                    .insert({
                        "user_id": user_id,
                        "need_id": line.need_id,
                        "quantity": line.quantity,
                        "amount": amount,
                    })
                    .execute()
                )
                entry.funding_id = result.data[0]["id"]
                created_rows.append(result.data[0])
                total += Decimal(str(amount))

            self.db.table("baskets").delete().eq("user_id", user_id).execute()

        except AppError:
            self._compensate(applied)
            raise
        except Exception as e:
            logger.error("checkout_failed", user_id=user_id, applied=len(applied), error=str(e))
            self._compensate(applied)
            raise DatabaseError("checkout", str(e))

        # Committed: nothing below may turn this into an error response
        needs = {line.need_id: line.need for line in lines}
        try:
            usernames = self._usernames_for(created_rows, needs)
        except DatabaseError as e:
            logger.warning("checkout_usernames_unavailable", user_id=user_id, error=e.message)
            usernames = {}

        records = self._to_responses(created_rows, needs, usernames)
        total_amount = round(float(total), 2)

        logger.info(
            "checkout_completed",
            user_id=user_id,
            items_processed=len(records),
            total_amount=total_amount
        )
        return CheckoutResult(records=records, total_amount=total_amount)

    # ===================
    # HISTORY
    # ===================

    def get_for_user(self, user_id: int) -> tuple[list[FundingRecordResponse], float]:
        """Funding history for one helper, newest first, with total."""
        logger.info("getting_user_funding", user_id=user_id)
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("user_id", user_id)
                .order("funded_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("get_user_funding_failed", user_id=user_id, error=str(e))
            raise DatabaseError("select", str(e))

        records = self._to_responses(result.data)
        return records, self._sum_amounts(records)

    def get_all(self) -> tuple[list[FundingRecordResponse], float]:
        """Every funding record, newest first, with grand total."""
        logger.info("getting_all_funding")
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("funded_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("get_all_funding_failed", error=str(e))
            raise DatabaseError("select", str(e))

        records = self._to_responses(result.data)
        return records, self._sum_amounts(records)

    def get_for_need(self, need_id: int) -> tuple[dict, list[FundingRecordResponse], float, int]:
        """
        Funding toward one need.

        Returns:
            Tuple of (need row, records, total amount, total quantity)

        Raises:
            NeedNotFoundError: If need doesn't exist
        """
        logger.info("getting_need_funding", need_id=need_id)

        need = self._needs_by_id({need_id}).get(need_id)
        if need is None:
            raise NeedNotFoundError(need_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("need_id", need_id)
                .order("funded_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("get_need_funding_failed", need_id=need_id, error=str(e))
            raise DatabaseError("select", str(e))

        records = self._to_responses(result.data)
        total_quantity = sum(r.quantity for r in records)
        return need, records, self._sum_amounts(records), total_quantity


# Singleton instance for convenience
_funding_service: Optional[FundingService] = None


def get_funding_service() -> FundingService:
    """Get or create FundingService instance."""
    global _funding_service
    if _funding_service is None:
        _funding_service = FundingService()
    return _funding_service
