"""
Need service: catalogue CRUD, filtering and ranking.

Equality filters run in the query; substring filters, scoring, sorting and
the limit are applied in Python because they depend on derived fields.
"""

from datetime import date, datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.need import (
    NeedCreate,
    NeedUpdate,
    NeedResponse,
    NeedSort,
    Priority,
    BundleTag,
)
from services.user_service import get_user_service
from services.urgency_service import score_need, sort_needs, filter_time_sensitive
from exceptions import (
    NeedNotFoundError,
    InvalidBundleTagError,
    ValidationError,
    DatabaseError
)

logger = structlog.get_logger(__name__)

VALID_BUNDLES = [b.value for b in BundleTag]


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle.lower() in haystack.lower()


class NeedService:
    """
    Need business logic.

    Handles CRUD operations for needs and the ranked listing.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "needs"
        self.user_service = get_user_service()

    # ===================
    # HELPERS
    # ===================

    def _enrich(self, rows: list[dict], today: Optional[date] = None) -> list[NeedResponse]:
        """Attach manager usernames and derived scoring fields."""
        today = today or date.today()
        usernames = self.user_service.get_usernames({row.get("manager_id") for row in rows})
        needs = []
        for row in rows:
            need = NeedResponse(**row, manager_username=usernames.get(row.get("manager_id")))
            needs.append(score_need(need, today))
        return needs

    def _fetch_row(self, need_id: int) -> dict:
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", need_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_need_failed", need_id=need_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise NeedNotFoundError(need_id)
        return result.data[0]

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        priority: Optional[Priority] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        bundle: Optional[str] = None,
        perishable: Optional[bool] = None,
        service: Optional[bool] = None,
        due_within: Optional[int] = None,
        manager_id: Optional[int] = None,
        time_sensitive_only: bool = False,
        sort: NeedSort = NeedSort.URGENCY,
        limit: Optional[int] = None,
        today: Optional[date] = None,
    ) -> list[NeedResponse]:
        """
        Get needs with optional filters, scored and sorted.

        Args:
            priority: Exact priority
            category: Case-insensitive substring of category
            search: Case-insensitive substring of title or description
            bundle: Exact bundle tag
            perishable: Only perishable (True) / non-perishable (False)
            service: Only service-required (True) / not (False)
            due_within: Only dated needs due within this many days
            manager_id: Only needs owned by this manager
            time_sensitive_only: Apply the time-sensitive filter
            sort: Sort strategy
            limit: Max results after sorting
            today: Reference date for scoring

        Returns:
            List of NeedResponse

        Raises:
            InvalidBundleTagError: If bundle is not a known tag
        """
        logger.info(
            "getting_needs",
            priority=priority,
            category=category,
            search=search,
            bundle=bundle,
            sort=sort,
            limit=limit
        )

        if bundle and bundle not in VALID_BUNDLES:
            raise InvalidBundleTagError(bundle, VALID_BUNDLES)

        try:
            query = self.db.table(self.table).select("*")

            if priority:
                query = query.eq("priority", Priority(priority).value)
            if bundle:
                query = query.eq("bundle_tag", bundle)
            if perishable is not None:
                query = query.eq("is_perishable", perishable)
            if service is not None:
                query = query.eq("service_required", service)
            if manager_id is not None:
                query = query.eq("manager_id", manager_id)

            result = query.execute()
            rows = result.data

        except Exception as e:
            logger.error("get_needs_failed", error=str(e))
            raise DatabaseError("select", str(e))

        if category:
            rows = [r for r in rows if _contains(r.get("category"), category)]
        if search:
            rows = [
                r for r in rows
                if _contains(r.get("title"), search) or _contains(r.get("description"), search)
            ]

        needs = self._enrich(rows, today)

        if due_within is not None:
            needs = [
                n for n in needs
                if n.days_until_due is not None and n.days_until_due <= due_within
            ]
        if time_sensitive_only:
            needs = filter_time_sensitive(needs)

        needs = sort_needs(needs, sort)

        if limit is not None:
            needs = needs[:limit]

        logger.info("needs_retrieved", count=len(needs))
        return needs

    def get_by_id(self, need_id: int, today: Optional[date] = None) -> NeedResponse:
        """
        Get a single need by ID.

        Raises:
            NeedNotFoundError: If need doesn't exist
        """
        logger.debug("getting_need", need_id=need_id)
        row = self._fetch_row(need_id)
        return self._enrich([row], today)[0]

    def exists(self, need_id: int) -> bool:
        try:
            self._fetch_row(need_id)
            return True
        except NeedNotFoundError:
            return False

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: NeedCreate) -> NeedResponse:
        """
        Create a new need.

        Raises:
            UserNotFoundError: If manager_id doesn't exist
            ManagerRoleRequiredError: If manager_id is not a manager
        """
        logger.info("creating_need", title=data.title, manager_id=data.manager_id)

        self.user_service.require_manager(data.manager_id, "create needs")

        insert_data = {
            "title": data.title,
            "description": data.description or None,
            "cost": float(data.cost),
            "quantity": data.quantity,
            "quantity_fulfilled": 0,
            "priority": data.priority.value,
            "category": data.category or None,
            "org_type": data.org_type.value,
            "needed_by": data.needed_by.isoformat() if data.needed_by else None,
            "is_perishable": data.is_perishable,
            "bundle_tag": data.bundle_tag.value,
            "service_required": data.service_required,
            "request_count": data.request_count,
            "manager_id": data.manager_id,
        }

        try:
            result = self.db.table(self.table).insert(insert_data).execute()
        except Exception as e:
            logger.error("create_need_failed", title=data.title, error=str(e))
            raise DatabaseError("insert", str(e))

        need = self._enrich(result.data)[0]
        logger.info("need_created", need_id=need.id, priority=need.priority)
        return need

    def update(self, need_id: int, data: NeedUpdate, acting_user_id: int) -> NeedResponse:
        """
        Update an existing need.

        Only fields present in the payload are written.

        Raises:
            ManagerRoleRequiredError: If acting user is not a manager
            NeedNotFoundError: If need doesn't exist
            ValidationError: If the update breaks the quantity invariants
        """
        logger.info("updating_need", need_id=need_id, acting_user_id=acting_user_id)

        self.user_service.require_manager(acting_user_id, "update needs")
        existing = self._fetch_row(need_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields provided to update")

        for field in ("title", "cost", "quantity", "quantity_fulfilled", "priority",
                      "org_type", "is_perishable", "bundle_tag", "service_required",
                      "request_count"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null", details={"field": field})

        current_fulfilled = existing.get("quantity_fulfilled") or 0
        new_quantity = changes.get("quantity", existing["quantity"])
        new_fulfilled = changes.get("quantity_fulfilled", current_fulfilled)

        if new_fulfilled < current_fulfilled:
            raise ValidationError(
                "Quantity fulfilled cannot decrease",
                details={"field": "quantity_fulfilled", "current": current_fulfilled}
            )
        if new_fulfilled > new_quantity:
            message = (
                "Quantity fulfilled cannot exceed total quantity"
                if "quantity_fulfilled" in changes
                else "Quantity cannot be less than the quantity already fulfilled"
            )
            raise ValidationError(
                message,
                details={"quantity": new_quantity, "quantity_fulfilled": new_fulfilled}
            )

        update_data = {}
        for field, value in changes.items():
            if hasattr(value, "value"):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            update_data[field] = value
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", need_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_need_failed", need_id=need_id, error=str(e))
            raise DatabaseError("update", str(e))

        need = self._enrich(result.data)[0]
        logger.info("need_updated", need_id=need_id, fields=sorted(changes.keys()))
        return need

    def delete(self, need_id: int, acting_user_id: int) -> bool:
        """
        Delete a need and everything that references it.

        Basket lines, funding records, events and their volunteer rows go
        first so nothing is left pointing at a missing need.

        Raises:
            ManagerRoleRequiredError: If acting user is not a manager
            NeedNotFoundError: If need doesn't exist
        """
        logger.info("deleting_need", need_id=need_id, acting_user_id=acting_user_id)

        self.user_service.require_manager(acting_user_id, "delete needs")
        self._fetch_row(need_id)

        try:
            events = (
                self.db.table("distribution_events")
                .select("id")
                .eq("need_id", need_id)
                .execute()
            )
            event_ids = [row["id"] for row in events.data]
            if event_ids:
                self.db.table("event_volunteers").delete().in_("event_id", event_ids).execute()
                self.db.table("distribution_events").delete().eq("need_id", need_id).execute()

            baskets = self.db.table("baskets").delete().eq("need_id", need_id).execute()
            funding = self.db.table("funding").delete().eq("need_id", need_id).execute()
            self.db.table(self.table).delete().eq("id", need_id).execute()

        except Exception as e:
            logger.error("delete_need_failed", need_id=need_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info(
            "need_deleted",
            need_id=need_id,
            baskets_removed=len(baskets.data),
            funding_removed=len(funding.data),
            events_removed=len(event_ids)
        )
        return True


# Singleton instance for convenience
_need_service: Optional[NeedService] = None


def get_need_service() -> NeedService:
    """Get or create NeedService instance."""
    global _need_service
    if _need_service is None:
        _need_service = NeedService()
    return _need_service
