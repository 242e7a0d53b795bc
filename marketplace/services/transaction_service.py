"""
TransactionService - Purchase State Machine

Moves a purchase through (status, escrow_status, delivery_status):

    initiate          -> (pending,    pending,  pending)    listing active -> reserved
    mark_paid         -> (processing, held,     pending)
    ship              -> (processing, held,     shipped)
    advance_delivery  -> (processing, held,     in_transit | delivered)
    confirm_delivery  -> (completed,  released, confirmed)  listing reserved -> sold
    cancel            -> (cancelled,  refunded, unchanged)  listing reserved -> active

This service is the only writer of the listing's ``reserved`` and ``sold``
statuses. Every step is a compare-and-swap on the current status inside one
database transaction, so two concurrent callers can never both win.
"""

import logging
import uuid
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from infrastructure.events import get_event_bus
from marketplace.domain.events import (
    TransactionCancelledEvent,
    TransactionCompletedEvent,
    TransactionInitiatedEvent,
    TransactionPaidEvent,
    TransactionShippedEvent,
)
from marketplace.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    MarketplaceError,
    NotFoundError,
    ValidationError,
)
from marketplace.infra.observability.metrics import (
    expired_transactions_total,
    reservation_conflicts_total,
    sale_value,
    transaction_transitions_total,
)
from marketplace.infra.observability.tracing import add_span_attributes, tracer
from marketplace.models import Listing, ProvenanceEvent, Transaction
from utils.rbac import is_admin, is_owner, require_owner_or_admin
from utils.transaction_utils import retry_on_deadlock

from .base import BaseService, ErrorCodes, ServiceResult, service_ok


User = get_user_model()
logger = logging.getLogger(__name__)

FEE_QUANTUM = Decimal("0.01")

# Errors that mean "the caller asked for something the current state forbids"
BUSINESS_ERRORS = (
    ErrorCodes.VALIDATION_ERROR,
    ErrorCodes.NOT_FOUND,
    ErrorCodes.PERMISSION_DENIED,
    ErrorCodes.CONFLICT,
)

# Forward-only courier progress; the key is the target, the value the allowed sources
DELIVERY_PROGRESSION = {
    Transaction.DELIVERY_IN_TRANSIT: (Transaction.DELIVERY_SHIPPED,),
    Transaction.DELIVERY_DELIVERED: (Transaction.DELIVERY_SHIPPED, Transaction.DELIVERY_IN_TRANSIT),
}

USER_ROLES = ("buyer", "seller")


def platform_fee_rate() -> Decimal:
    return Decimal(str(settings.MARKETPLACE.get("PLATFORM_FEE_RATE", "0.05")))


def calculate_platform_fee(amount: Decimal, rate: Optional[Decimal] = None) -> Decimal:
    """
    Platform commission on a sale, rounded half-up to cents.

    Example:
        >>> calculate_platform_fee(Decimal("1000.00"))
        Decimal('50.00')
    """
    rate = platform_fee_rate() if rate is None else Decimal(str(rate))
    return (Decimal(str(amount)) * rate).quantize(FEE_QUANTUM, rounding=ROUND_HALF_UP)


class TransactionService(BaseService):
    """
    Service driving the purchase/escrow/delivery state machine.

    Dependencies:
    - EventBus: transaction.* events (best effort, after commit of the step)
    """

    def __init__(self, event_bus=None, fee_rate: Optional[Decimal] = None):
        """
        Initialize TransactionService.

        Args:
            event_bus: Event bus for publishing domain events (injected)
            fee_rate: Override for MARKETPLACE["PLATFORM_FEE_RATE"]
        """
        super().__init__()
        self.event_bus = event_bus or get_event_bus()
        self.fee_rate = fee_rate

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _execute(self, event: str, context: str, operation: Callable, **span_attributes) -> ServiceResult:
        with tracer.start_as_current_span(f"transaction_{event}") as span:
            add_span_attributes(span, **span_attributes)
            try:
                value = operation()
            except Exception as e:
                span.record_exception(e)
                result = self.error_result(e, context)
                outcome = "rejected" if result.error in BUSINESS_ERRORS else "error"
                transaction_transitions_total.labels(event=event, outcome=outcome).inc()
                return result

            transaction_transitions_total.labels(event=event, outcome="success").inc()
            return service_ok(value)

    def _lock(self, transaction_id) -> Transaction:
        try:
            return Transaction.objects.select_for_update().get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise NotFoundError(f"Transaction {transaction_id} not found")

    def _reservation_failure(self, listing_id, buyer) -> MarketplaceError:
        """Explain why the active -> reserved swap matched no row."""
        row = Listing.objects.filter(pk=listing_id).values("seller_id", "status").first()
        if row is None:
            reservation_conflicts_total.labels(reason="not_found").inc()
            return NotFoundError(f"Listing {listing_id} not found")
        if is_owner(buyer, row["seller_id"]):
            reservation_conflicts_total.labels(reason="own_listing").inc()
            return ConflictError("Sellers cannot purchase their own listing")

        reservation_conflicts_total.labels(reason=row["status"]).inc()
        if row["status"] == Listing.STATUS_RESERVED:
            return ConflictError("Listing already has a purchase in progress")
        return ConflictError(f"Listing is not available for purchase (status '{row['status']}')")

    # ------------------------------------------------------------------
    # initiate
    # ------------------------------------------------------------------

    @retry_on_deadlock()
    def _reserve_and_create(self, listing_id, buyer, shipping_address: Dict) -> Transaction:
        with transaction.atomic():
            reserved = Listing.objects.compare_and_set_status(
                listing_id, Listing.STATUS_ACTIVE, Listing.STATUS_RESERVED, exclude_seller_id=buyer.pk
            )
            if not reserved:
                raise self._reservation_failure(listing_id, buyer)

            listing = Listing.objects.get(pk=listing_id)
            amount = listing.price

            try:
                with transaction.atomic():
                    return Transaction.objects.create(
                        listing=listing,
                        buyer=buyer,
                        seller_id=listing.seller_id,
                        amount=amount,
                        platform_fee=calculate_platform_fee(amount, self.fee_rate),
                        currency=listing.currency,
                        status=Transaction.STATUS_PENDING,
                        escrow_status=Transaction.ESCROW_PENDING,
                        delivery_status=Transaction.DELIVERY_PENDING,
                        shipping_address=shipping_address or {},
                    )
            except IntegrityError:
                reservation_conflicts_total.labels(reason="live_transaction").inc()
                raise ConflictError("Listing already has a purchase in progress")

    @BaseService.log_performance
    def initiate(self, listing_id, buyer, shipping_address: Optional[Dict] = None) -> ServiceResult[Transaction]:
        """
        Reserve an active listing for ``buyer`` and open a pending transaction.

        The reservation is a single conditional UPDATE on the listing's status;
        of two concurrent callers exactly one matches the row. The loser gets
        CONFLICT (or NOT_FOUND when the listing does not exist).

        Args:
            listing_id: Listing UUID
            buyer: Authenticated buyer (must not be the listing's seller)
            shipping_address: Free-form address dict stored with the transaction

        Returns:
            ServiceResult with the new Transaction in (pending, pending, pending)
        """
        if shipping_address is not None and not isinstance(shipping_address, dict):
            return self.error_result(ValidationError("shipping_address must be an object"), "initiating")

        result = self._execute(
            "initiate",
            f"initiating purchase of listing {listing_id} by user {buyer.pk}",
            lambda: self._reserve_and_create(listing_id, buyer, shipping_address),
            **{"listing.id": listing_id, "buyer.id": buyer.pk},
        )

        if result.ok:
            tx = result.value
            self.logger.info(
                f"Reserved listing {listing_id} for buyer {buyer.pk}: transaction {tx.id}, "
                f"amount {tx.amount} {tx.currency}, fee {tx.platform_fee}"
            )
            TransactionInitiatedEvent(
                transaction_id=str(tx.id),
                listing_id=str(tx.listing_id),
                buyer_id=str(tx.buyer_id),
                seller_id=str(tx.seller_id),
                amount=tx.amount,
            ).publish(self.event_bus)

        return result

    # ------------------------------------------------------------------
    # mark_paid
    # ------------------------------------------------------------------

    @retry_on_deadlock()
    def _pay(self, transaction_id, actor, payment_reference: str) -> Transaction:
        with transaction.atomic():
            tx = self._lock(transaction_id)
            require_owner_or_admin(actor, tx.buyer_id, "Only the buyer or an admin can record payment")

            changed = Transaction.objects.compare_and_set(
                tx.pk,
                Transaction.STATUS_PENDING,
                status=Transaction.STATUS_PROCESSING,
                escrow_status=Transaction.ESCROW_HELD,
                payment_reference=payment_reference,
                paid_at=timezone.now(),
            )
            if not changed:
                raise ConflictError(f"Cannot record payment for a transaction in status '{tx.status}'")

            tx.refresh_from_db()
            return tx

    @BaseService.log_performance
    def mark_paid(self, transaction_id, actor, payment_reference: Optional[str] = None) -> ServiceResult[Transaction]:
        """
        Record that the buyer paid; funds are now held in escrow.

        No payment rail is involved: when no reference is supplied a mock one
        is generated.
        """
        payment_reference = payment_reference or f"mock_pi_{uuid.uuid4().hex[:24]}"

        result = self._execute(
            "mark_paid",
            f"recording payment for transaction {transaction_id}",
            lambda: self._pay(transaction_id, actor, payment_reference),
            **{"transaction.id": transaction_id},
        )

        if result.ok:
            TransactionPaidEvent(
                transaction_id=str(result.value.id), payment_reference=payment_reference
            ).publish(self.event_bus)

        return result

    # ------------------------------------------------------------------
    # ship / advance_delivery
    # ------------------------------------------------------------------

    @retry_on_deadlock()
    def _move_delivery(self, transaction_id, actor, delivery_status: str, allowed_from, **extra) -> Transaction:
        with transaction.atomic():
            tx = self._lock(transaction_id)
            require_owner_or_admin(actor, tx.seller_id, "Only the seller or an admin can update delivery")

            changed = Transaction.objects.compare_and_set(
                tx.pk,
                Transaction.STATUS_PROCESSING,
                delivery_expected=allowed_from,
                delivery_status=delivery_status,
                **extra,
            )
            if not changed:
                raise ConflictError(
                    f"Cannot move delivery to '{delivery_status}' from ({tx.status}, {tx.delivery_status})"
                )

            tx.refresh_from_db()
            return tx

    @BaseService.log_performance
    def ship(self, transaction_id, actor) -> ServiceResult[Transaction]:
        """Seller (or admin) marks a paid transaction as shipped."""
        result = self._execute(
            "ship",
            f"shipping transaction {transaction_id}",
            lambda: self._move_delivery(
                transaction_id,
                actor,
                Transaction.DELIVERY_SHIPPED,
                (Transaction.DELIVERY_PENDING,),
                shipped_at=timezone.now(),
            ),
            **{"transaction.id": transaction_id},
        )

        if result.ok:
            TransactionShippedEvent(
                transaction_id=str(result.value.id), delivery_status=result.value.delivery_status
            ).publish(self.event_bus)

        return result

    @BaseService.log_performance
    def advance_delivery(self, transaction_id, actor, delivery_status: str) -> ServiceResult[Transaction]:
        """
        Record courier progress after shipping: shipped -> in_transit -> delivered.

        Progress only moves forward; ``confirmed`` is reserved for the buyer
        through confirm_delivery.
        """
        if delivery_status not in DELIVERY_PROGRESSION:
            return self.error_result(
                ValidationError(f"delivery_status must be one of {sorted(DELIVERY_PROGRESSION)}"),
                f"advancing delivery of transaction {transaction_id}",
            )

        result = self._execute(
            "advance_delivery",
            f"advancing delivery of transaction {transaction_id}",
            lambda: self._move_delivery(
                transaction_id, actor, delivery_status, DELIVERY_PROGRESSION[delivery_status]
            ),
            **{"transaction.id": transaction_id, "delivery.status": delivery_status},
        )

        if result.ok:
            TransactionShippedEvent(
                transaction_id=str(result.value.id), delivery_status=delivery_status
            ).publish(self.event_bus)

        return result

    # ------------------------------------------------------------------
    # confirm_delivery
    # ------------------------------------------------------------------

    @retry_on_deadlock()
    def _complete(self, transaction_id, actor) -> Transaction:
        with transaction.atomic():
            tx = self._lock(transaction_id)
            if not is_owner(actor, tx.buyer_id):
                raise AuthorizationError("Only the buyer can confirm delivery")

            now = timezone.now()
            changed = Transaction.objects.compare_and_set(
                tx.pk,
                Transaction.STATUS_PROCESSING,
                delivery_expected=Transaction.CONFIRMABLE_DELIVERY_STATUSES,
                status=Transaction.STATUS_COMPLETED,
                escrow_status=Transaction.ESCROW_RELEASED,
                delivery_status=Transaction.DELIVERY_CONFIRMED,
                delivery_confirmed_at=now,
                completed_at=now,
            )
            if not changed:
                raise ConflictError(
                    f"Cannot confirm delivery of a transaction in state ({tx.status}, {tx.delivery_status})"
                )

            sold = Listing.objects.compare_and_set_status(tx.listing_id, Listing.STATUS_RESERVED, Listing.STATUS_SOLD)
            if not sold:
                raise ConflictError(f"Listing {tx.listing_id} is no longer reserved for this transaction")

            User.objects.filter(pk=tx.buyer_id).update(total_purchases=F("total_purchases") + 1)
            User.objects.filter(pk=tx.seller_id).update(total_sales=F("total_sales") + 1)

            ProvenanceEvent.objects.create(
                listing_id=tx.listing_id,
                event_type="sale",
                event_date=now.date(),
                description=f"Sold through the marketplace for {tx.amount} {tx.currency}",
                recorded_by=actor,
            )

            tx.refresh_from_db()
            return tx

    @BaseService.log_performance
    def confirm_delivery(self, transaction_id, actor) -> ServiceResult[Transaction]:
        """
        Buyer confirms receipt: escrow is released and the listing is sold.

        Only the buyer may confirm; anyone else gets PERMISSION_DENIED and
        nothing changes.
        """
        result = self._execute(
            "confirm_delivery",
            f"confirming delivery of transaction {transaction_id}",
            lambda: self._complete(transaction_id, actor),
            **{"transaction.id": transaction_id, "actor.id": getattr(actor, "pk", None)},
        )

        if result.ok:
            tx = result.value
            sale_value.observe(float(tx.amount))
            self.logger.info(f"Transaction {tx.id} completed: listing {tx.listing_id} sold for {tx.amount}")
            TransactionCompletedEvent(
                transaction_id=str(tx.id),
                listing_id=str(tx.listing_id),
                buyer_id=str(tx.buyer_id),
                seller_id=str(tx.seller_id),
                amount=tx.amount,
            ).publish(self.event_bus)

        return result

    # ------------------------------------------------------------------
    # cancel / expire
    # ------------------------------------------------------------------

    def _cancel_locked(self, tx: Transaction, actor, reason: str) -> Transaction:
        """Cancel a row already locked by the caller and release its listing."""
        changed = Transaction.objects.compare_and_set(
            tx.pk,
            Transaction.LIVE_STATUSES,
            status=Transaction.STATUS_CANCELLED,
            escrow_status=Transaction.ESCROW_REFUNDED,
            cancellation_reason=reason[:255],
            cancelled_by=actor,
            cancelled_at=timezone.now(),
        )
        if not changed:
            raise ConflictError(f"Cannot cancel a transaction in status '{tx.status}'")

        released = Listing.objects.compare_and_set_status(tx.listing_id, Listing.STATUS_RESERVED, Listing.STATUS_ACTIVE)
        if not released:
            self.logger.warning(f"Listing {tx.listing_id} was not reserved when transaction {tx.pk} was cancelled")

        tx.refresh_from_db()
        return tx

    @retry_on_deadlock()
    def _cancel(self, transaction_id, actor, reason: str) -> Transaction:
        with transaction.atomic():
            tx = self._lock(transaction_id)
            if not (is_owner(actor, tx.buyer_id) or is_owner(actor, tx.seller_id) or is_admin(actor)):
                raise AuthorizationError("Only the buyer, the seller or an admin can cancel this transaction")
            return self._cancel_locked(tx, actor, reason)

    @BaseService.log_performance
    def cancel(self, transaction_id, actor, reason: str = "") -> ServiceResult[Transaction]:
        """
        Cancel a pending or processing transaction and put the listing back on sale.

        Escrow moves to ``refunded``; the delivery status is left as it was.
        """
        result = self._execute(
            "cancel",
            f"cancelling transaction {transaction_id}",
            lambda: self._cancel(transaction_id, actor, reason or ""),
            **{"transaction.id": transaction_id},
        )

        if result.ok:
            tx = result.value
            TransactionCancelledEvent(
                transaction_id=str(tx.id),
                listing_id=str(tx.listing_id),
                cancelled_by=str(actor.pk),
                reason=tx.cancellation_reason,
            ).publish(self.event_bus)

        return result

    @BaseService.log_performance
    def expire_stale_pending(self, older_than: timedelta) -> ServiceResult[int]:
        """
        Cancel pending transactions created before ``now - older_than``.

        Intended for a scheduler; the core itself never expires anything.
        Each transaction is released in its own database transaction so one
        failure does not block the rest. A row paid in the meantime is
        skipped.

        Returns:
            ServiceResult with the number of transactions expired
        """
        if not isinstance(older_than, timedelta) or older_than <= timedelta(0):
            return self.error_result(ValidationError("older_than must be a positive duration"), "expiring")

        cutoff = timezone.now() - older_than
        stale_ids = list(
            Transaction.objects.filter(status=Transaction.STATUS_PENDING, created_at__lt=cutoff).values_list(
                "id", flat=True
            )
        )

        expired = 0
        for transaction_id in stale_ids:
            try:
                with transaction.atomic():
                    tx = self._lock(transaction_id)
                    if tx.status != Transaction.STATUS_PENDING:
                        continue
                    tx = self._cancel_locked(tx, None, "expired")
            except (ConflictError, NotFoundError):
                continue
            except Exception as e:
                self.logger.error(f"Failed to expire transaction {transaction_id}: {e}", exc_info=True)
                continue

            expired += 1
            expired_transactions_total.inc()
            TransactionCancelledEvent(
                transaction_id=str(tx.id), listing_id=str(tx.listing_id), cancelled_by="system", reason="expired"
            ).publish(self.event_bus)

        if expired:
            self.logger.info(f"Expired {expired} pending transactions older than {older_than}")
        return service_ok(expired)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def get_by_id(self, transaction_id, actor) -> ServiceResult[Transaction]:
        """Fetch one transaction; visible to its buyer, its seller and admins."""
        try:
            try:
                tx = Transaction.objects.select_related("listing", "buyer", "seller").get(pk=transaction_id)
            except Transaction.DoesNotExist:
                raise NotFoundError(f"Transaction {transaction_id} not found")

            if not (is_owner(actor, tx.buyer_id) or is_owner(actor, tx.seller_id) or is_admin(actor)):
                raise AuthorizationError("You are not a party to this transaction")

            return service_ok(tx)

        except Exception as e:
            return self.error_result(e, f"getting transaction {transaction_id}")

    @BaseService.log_performance
    def list_for_user(
        self, user, role: str = "buyer", status: Optional[str] = None, limit: int = None, offset: int = 0
    ) -> ServiceResult[List[Transaction]]:
        """
        The user's purchases (role="buyer") or sales (role="seller"), newest first.
        """
        try:
            if role not in USER_ROLES:
                raise ValidationError(f"role must be one of {USER_ROLES}")
            if status and status not in dict(Transaction.STATUS_CHOICES):
                raise ValidationError(f"Unknown status '{status}'")

            marketplace_settings = settings.MARKETPLACE
            limit = int(limit or marketplace_settings.get("DEFAULT_PAGE_SIZE", 20))
            limit = min(max(limit, 1), marketplace_settings.get("MAX_PAGE_SIZE", 100))
            offset = max(int(offset or 0), 0)

            queryset = Transaction.objects.select_related("listing", "buyer", "seller")
            queryset = queryset.filter(buyer=user) if role == "buyer" else queryset.filter(seller=user)
            if status:
                queryset = queryset.filter(status=status)

            return service_ok(list(queryset.order_by("-created_at")[offset : offset + limit]))

        except (TypeError, ValueError) as e:
            return self.error_result(ValidationError(f"Invalid paging parameters: {e}"), "listing transactions")
        except Exception as e:
            return self.error_result(e, f"listing {role} transactions for user {getattr(user, 'pk', None)}")
