import uuid
from decimal import Decimal
from typing import Iterable, Union

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from marketplace.catalog.domain.models.listing import Listing


class TransactionManager(models.Manager):
    def compare_and_set(
        self,
        transaction_id,
        expected: Union[str, Iterable[str]],
        delivery_expected: Union[str, Iterable[str], None] = None,
        **changes,
    ) -> int:
        """
        Apply ``changes`` only if the row's status is still one of ``expected``
        (and, when given, its delivery status one of ``delivery_expected``).

        Returns the number of rows changed (0 means another writer got there first).
        """
        expected = [expected] if isinstance(expected, str) else list(expected)
        changes.setdefault("updated_at", timezone.now())
        queryset = self.filter(pk=transaction_id, status__in=expected)
        if delivery_expected is not None:
            if isinstance(delivery_expected, str):
                delivery_expected = [delivery_expected]
            queryset = queryset.filter(delivery_status__in=list(delivery_expected))
        return queryset.update(**changes)

    def live(self):
        return self.filter(status__in=Transaction.LIVE_STATUSES)


class Transaction(models.Model):
    """
    One purchase attempt of one Listing by one buyer.

    The purchase state is the triple (status, escrow_status, delivery_status);
    only TransactionService moves it.
    """

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_REFUNDED = "refunded"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    LIVE_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)

    ESCROW_PENDING = "pending"
    ESCROW_HELD = "held"
    ESCROW_RELEASED = "released"
    ESCROW_REFUNDED = "refunded"
    ESCROW_DISPUTED = "disputed"

    ESCROW_STATUS_CHOICES = [
        (ESCROW_PENDING, "Pending"),
        (ESCROW_HELD, "Held"),
        (ESCROW_RELEASED, "Released"),
        (ESCROW_REFUNDED, "Refunded"),
        (ESCROW_DISPUTED, "Disputed"),
    ]

    DELIVERY_PENDING = "pending"
    DELIVERY_SHIPPED = "shipped"
    DELIVERY_IN_TRANSIT = "in_transit"
    DELIVERY_DELIVERED = "delivered"
    DELIVERY_CONFIRMED = "confirmed"

    DELIVERY_STATUS_CHOICES = [
        (DELIVERY_PENDING, "Pending"),
        (DELIVERY_SHIPPED, "Shipped"),
        (DELIVERY_IN_TRANSIT, "In transit"),
        (DELIVERY_DELIVERED, "Delivered"),
        (DELIVERY_CONFIRMED, "Confirmed"),
    ]

    # Delivery states from which the buyer may confirm receipt
    CONFIRMABLE_DELIVERY_STATUSES = (DELIVERY_SHIPPED, DELIVERY_IN_TRANSIT, DELIVERY_DELIVERED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    listing = models.ForeignKey(Listing, on_delete=models.PROTECT, related_name="transactions")
    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="purchases")
    # Snapshot of listing.seller at creation time
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="sales")

    # Money (snapshots)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    platform_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3)

    # State
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    escrow_status = models.CharField(max_length=20, choices=ESCROW_STATUS_CHOICES, default=ESCROW_PENDING)
    delivery_status = models.CharField(max_length=20, choices=DELIVERY_STATUS_CHOICES, null=True, blank=True)

    shipping_address = models.JSONField(default=dict, blank=True)
    payment_reference = models.CharField(max_length=255, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivery_confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = TransactionManager()

    class Meta:
        app_label = "marketplace"
        ordering = ["-created_at"]
        constraints = [
            # At most one live (non-terminal) transaction per listing
            models.UniqueConstraint(
                fields=["listing"],
                condition=Q(status__in=["pending", "processing"]),
                name="unique_live_transaction_per_listing",
            ),
        ]
        indexes = [
            models.Index(fields=["buyer", "-created_at"], name="tx_buyer_created_idx"),
            models.Index(fields=["seller", "-created_at"], name="tx_seller_created_idx"),
            models.Index(fields=["status", "created_at"], name="tx_status_created_idx"),
        ]

    def __str__(self):
        return f"Transaction {self.id} ({self.status}/{self.escrow_status}/{self.delivery_status})"

    @property
    def is_live(self) -> bool:
        return self.status in self.LIVE_STATUSES

    @property
    def state(self) -> tuple:
        return (self.status, self.escrow_status, self.delivery_status)
