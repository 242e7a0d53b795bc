"""
ListingService - Listing Lifecycle Management

Owns a listing's seller-driven status changes (draft/active/archived), its
descriptive fields, the best-effort view counter and the provenance history.
Reservation and sale (active <-> reserved -> sold) belong to TransactionService.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterable, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date

from infrastructure.events import get_event_bus
from marketplace.domain.events import ListingStatusChangedEvent
from marketplace.domain.exceptions import ConflictError, NotFoundError, ValidationError
from marketplace.infra.observability.metrics import listing_status_changes_total, view_tracking_failures_total
from marketplace.models import Listing, ProvenanceEvent
from utils.rbac import require_owner_or_admin

from .base import BaseService, ServiceResult, service_ok
from .verification_service import VerificationService


User = get_user_model()
logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "artist_name",
    "artist_bio",
    "medium",
    "style",
    "dimensions",
    "year_created",
    "primary_image_url",
    "price",
    "currency",
)

# Price may only be revised before the item is claimed by a buyer
PRICE_EDITABLE_STATUSES = (Listing.STATUS_DRAFT, Listing.STATUS_ACTIVE)

ORDERINGS = {
    "newest": ("-created_at",),
    "price_asc": ("price", "-created_at"),
    "price_desc": ("-price", "-created_at"),
    "popular": ("-view_count", "-created_at"),
}


def parse_price(value) -> Decimal:
    """Parse a positive money amount, rounded to cents."""
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Price must be a decimal amount")
    if not price.is_finite():
        raise ValidationError("Price must be a decimal amount")
    price = price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if price <= 0:
        raise ValidationError("Price must be greater than zero")
    return price


def _parse_optional_decimal(value, name: str) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{name} must be a decimal amount")


class ListingService(BaseService):
    """
    Service for the seller-facing listing lifecycle.

    Dependencies:
    - VerificationService: admin verification gate (set_verification delegates to it)
    - EventBus: listing.status_changed events
    """

    def __init__(self, verification_service: VerificationService = None, event_bus=None):
        super().__init__()
        self.verification_service = verification_service or VerificationService()
        self.event_bus = event_bus or get_event_bus()

    def _clean_attrs(self, attrs: Dict, creating: bool) -> Dict:
        data = {key: attrs[key] for key in EDITABLE_FIELDS if key in attrs}

        if creating:
            for required in ("title", "artist_name", "price"):
                if data.get(required) in (None, ""):
                    raise ValidationError(f"{required} is required")

        for text_field in ("title", "artist_name"):
            if text_field in data and not str(data[text_field]).strip():
                raise ValidationError(f"{text_field} cannot be blank")

        if "price" in data:
            data["price"] = parse_price(data["price"])

        if "currency" in data:
            currency = str(data["currency"] or "").upper()
            if len(currency) != 3 or not currency.isalpha():
                raise ValidationError("currency must be a 3-letter ISO code")
            data["currency"] = currency

        if data.get("year_created") not in (None, ""):
            try:
                data["year_created"] = int(data["year_created"])
            except (TypeError, ValueError):
                raise ValidationError("year_created must be a year")
            if data["year_created"] < 0 or data["year_created"] > timezone.now().year:
                raise ValidationError("year_created cannot be in the future")
        elif "year_created" in data:
            data["year_created"] = None

        return data

    def _get_listing(self, listing_id) -> Listing:
        try:
            return Listing.objects.select_related("seller").get(pk=listing_id)
        except Listing.DoesNotExist:
            raise NotFoundError(f"Listing {listing_id} not found")

    @BaseService.log_performance
    def create(self, seller, attrs: Dict) -> ServiceResult[Listing]:
        """
        Create a listing in ``draft`` status owned by ``seller``.

        Args:
            seller: Authenticated user creating the listing
            attrs: Descriptive fields; ``title``, ``artist_name`` and a
                   positive ``price`` are required

        Returns:
            ServiceResult with the new Listing
        """
        try:
            data = self._clean_attrs(attrs, creating=True)

            with transaction.atomic():
                listing = Listing.objects.create(seller=seller, status=Listing.STATUS_DRAFT, **data)
                # Listing something makes a pure buyer a buyer-and-seller
                User.objects.filter(pk=seller.pk, user_type="buyer").update(user_type="both")

            listing_status_changes_total.labels(to_status=Listing.STATUS_DRAFT).inc()
            self.logger.info(f"Created listing {listing.id} for seller {seller.id} at {listing.price}")
            return service_ok(listing)

        except Exception as e:
            return self.error_result(e, f"creating listing for seller {getattr(seller, 'id', None)}")

    @BaseService.log_performance
    def update(self, listing_id, actor, attrs: Dict) -> ServiceResult[Listing]:
        """
        Update descriptive fields and/or revise the price (owner or admin).

        A price revision is refused with CONFLICT once the listing is
        reserved, sold or archived. Status cannot be changed here.
        """
        try:
            data = self._clean_attrs(attrs, creating=False)

            with transaction.atomic():
                listing = self._get_listing(listing_id)
                require_owner_or_admin(actor, listing.seller_id, "Only the owner or an admin can edit this listing")

                if data:
                    queryset = Listing.objects.filter(pk=listing.pk)
                    if "price" in data:
                        queryset = queryset.filter(status__in=PRICE_EDITABLE_STATUSES)
                    updated = queryset.update(updated_at=timezone.now(), **data)
                    if not updated:
                        raise ConflictError(f"Cannot change the price of a listing in status '{listing.status}'")

                listing.refresh_from_db()

            self.logger.info(f"Updated listing {listing_id}: {sorted(data)}")
            return service_ok(listing)

        except Exception as e:
            return self.error_result(e, f"updating listing {listing_id}")

    def _transition(
        self, listing_id, actor, from_statuses: Iterable[str], to_status: str, verb: str
    ) -> ServiceResult[Listing]:
        try:
            listing = self._get_listing(listing_id)
            require_owner_or_admin(actor, listing.seller_id, f"Only the owner or an admin can {verb} this listing")

            changed = Listing.objects.compare_and_set_status(listing.pk, from_statuses, to_status)
            if not changed:
                current = Listing.objects.filter(pk=listing.pk).values_list("status", flat=True).first()
                if current == Listing.STATUS_RESERVED:
                    raise ConflictError(f"Cannot {verb} a listing while a purchase is in progress")
                raise ConflictError(f"Cannot {verb} a listing in status '{current}'")

            listing.refresh_from_db()
            listing_status_changes_total.labels(to_status=to_status).inc()
            ListingStatusChangedEvent(
                listing_id=str(listing.id),
                from_statuses=list(from_statuses),
                to_status=to_status,
                actor_id=str(actor.pk),
            ).publish(self.event_bus)

            self.logger.info(f"Listing {listing_id} moved to {to_status} by user {actor.pk}")
            return service_ok(listing)

        except Exception as e:
            return self.error_result(e, f"trying to {verb} listing {listing_id}")

    @BaseService.log_performance
    def activate(self, listing_id, actor) -> ServiceResult[Listing]:
        """Publish a draft or archived listing (owner or admin)."""
        return self._transition(
            listing_id, actor, (Listing.STATUS_DRAFT, Listing.STATUS_ARCHIVED), Listing.STATUS_ACTIVE, "activate"
        )

    @BaseService.log_performance
    def archive(self, listing_id, actor) -> ServiceResult[Listing]:
        """Withdraw a draft or active listing (owner or admin). Reserved listings cannot be archived."""
        return self._transition(
            listing_id, actor, (Listing.STATUS_DRAFT, Listing.STATUS_ACTIVE), Listing.STATUS_ARCHIVED, "archive"
        )

    def record_view(self, listing_id) -> bool:
        """
        Increment the view counter.

        Best effort: a failure is logged and counted but never reaches the
        caller. Runs in its own savepoint so a failed increment cannot poison
        an enclosing transaction.
        """
        try:
            with transaction.atomic():
                return Listing.objects.increment(listing_id, "view_count") == 1
        except Exception as e:
            view_tracking_failures_total.inc()
            self.logger.warning(f"Failed to record view for listing {listing_id}: {e}")
            return False

    def set_verification(self, listing_id, actor, status: str, confidence_score=None) -> ServiceResult[Listing]:
        """Admin-only; see VerificationService.verify."""
        return self.verification_service.verify(listing_id, actor, status, confidence_score)

    @BaseService.log_performance
    def get_by_id(self, listing_id, track_view: bool = True) -> ServiceResult[Listing]:
        try:
            listing = self._get_listing(listing_id)
        except Exception as e:
            return self.error_result(e, f"getting listing {listing_id}")

        if track_view and self.record_view(listing.pk):
            listing.view_count += 1

        return service_ok(listing)

    @BaseService.log_performance
    def list(self, filters: Optional[Dict] = None) -> ServiceResult[Dict]:
        """
        List listings with filtering, ordering and limit/offset pagination.

        Filters:
            status (default "active"), seller_id, style, medium, min_price,
            max_price, search (title/artist/description), verification_status,
            order_by (newest|price_asc|price_desc|popular), limit, offset

        Returns:
            ServiceResult with {"results", "count", "limit", "offset"}
        """
        filters = filters or {}
        try:
            marketplace_settings = settings.MARKETPLACE
            try:
                limit = int(filters.get("limit") or marketplace_settings.get("DEFAULT_PAGE_SIZE", 20))
                offset = int(filters.get("offset") or 0)
            except (TypeError, ValueError):
                raise ValidationError("limit and offset must be integers")
            if limit < 1 or offset < 0:
                raise ValidationError("limit must be positive and offset non-negative")
            limit = min(limit, marketplace_settings.get("MAX_PAGE_SIZE", 100))

            status = filters.get("status") or Listing.STATUS_ACTIVE
            if status not in dict(Listing.STATUS_CHOICES):
                raise ValidationError(f"Unknown status '{status}'")

            order_by = filters.get("order_by") or "newest"
            if order_by not in ORDERINGS:
                raise ValidationError(f"order_by must be one of {sorted(ORDERINGS)}")

            queryset = Listing.objects.select_related("seller").filter(status=status)

            if filters.get("seller_id"):
                queryset = queryset.filter(seller_id=filters["seller_id"])
            if filters.get("style"):
                queryset = queryset.filter(style__iexact=filters["style"])
            if filters.get("medium"):
                queryset = queryset.filter(medium__iexact=filters["medium"])
            if filters.get("verification_status"):
                queryset = queryset.filter(verification_status=filters["verification_status"])

            min_price = _parse_optional_decimal(filters.get("min_price"), "min_price")
            max_price = _parse_optional_decimal(filters.get("max_price"), "max_price")
            if min_price is not None:
                queryset = queryset.filter(price__gte=min_price)
            if max_price is not None:
                queryset = queryset.filter(price__lte=max_price)

            search = (filters.get("search") or "").strip()
            if search:
                queryset = queryset.filter(
                    Q(title__icontains=search) | Q(artist_name__icontains=search) | Q(description__icontains=search)
                )

            queryset = queryset.order_by(*ORDERINGS[order_by])
            total_count = queryset.count()
            results = list(queryset[offset : offset + limit])

            return service_ok({"results": results, "count": total_count, "limit": limit, "offset": offset})

        except Exception as e:
            return self.error_result(e, "listing listings")

    @BaseService.log_performance
    def list_for_seller(self, seller_id) -> ServiceResult[list]:
        """All of a seller's listings in every status, newest first."""
        try:
            return service_ok(list(Listing.objects.filter(seller_id=seller_id).order_by("-created_at")))
        except Exception as e:
            return self.error_result(e, f"listing listings of seller {seller_id}")

    @BaseService.log_performance
    def add_provenance_event(self, listing_id, actor, attrs: Dict) -> ServiceResult[ProvenanceEvent]:
        """
        Append a provenance record (owner or admin).

        Provenance is append-only; there is no update or delete counterpart.
        """
        try:
            listing = self._get_listing(listing_id)
            require_owner_or_admin(actor, listing.seller_id, "Only the owner or an admin can add provenance")

            event_type = attrs.get("event_type")
            if event_type not in ProvenanceEvent.valid_event_types():
                raise ValidationError(f"event_type must be one of {ProvenanceEvent.valid_event_types()}")

            event_date = attrs.get("event_date")
            if isinstance(event_date, str):
                event_date = parse_date(event_date)
                if event_date is None:
                    raise ValidationError("event_date must be an ISO date (YYYY-MM-DD)")

            event = ProvenanceEvent.objects.create(
                listing=listing,
                event_type=event_type,
                event_date=event_date,
                description=attrs.get("description", ""),
                location=attrs.get("location", ""),
                verified_by=attrs.get("verified_by", ""),
                document_url=attrs.get("document_url", ""),
                recorded_by=actor,
            )

            self.logger.info(f"Recorded {event_type} provenance event {event.id} on listing {listing_id}")
            return service_ok(event)

        except Exception as e:
            return self.error_result(e, f"adding provenance to listing {listing_id}")

    @BaseService.log_performance
    def list_provenance(self, listing_id) -> ServiceResult[list]:
        try:
            listing = self._get_listing(listing_id)
            return service_ok(list(listing.provenance_events.all()))
        except Exception as e:
            return self.error_result(e, f"listing provenance of listing {listing_id}")
