import uuid
from decimal import Decimal
from typing import Iterable, Union

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F
from django.utils import timezone

from marketplace.domain.exceptions import ConflictError


def default_currency():
    return settings.MARKETPLACE.get("DEFAULT_CURRENCY", "USD")


class ListingManager(models.Manager):
    """
    Conditional and atomic writes for Listing rows.

    Every method issues a single UPDATE and returns the number of rows it
    changed, so callers can tell a lost race (0) from a win (1).
    """

    def compare_and_set_status(
        self,
        listing_id,
        expected: Union[str, Iterable[str]],
        new_status: str,
        exclude_seller_id=None,
    ) -> int:
        """UPDATE listing SET status = new WHERE id = X AND status IN expected [AND seller != Y]."""
        expected = [expected] if isinstance(expected, str) else list(expected)
        queryset = self.filter(pk=listing_id, status__in=expected)
        if exclude_seller_id is not None:
            queryset = queryset.exclude(seller_id=exclude_seller_id)
        return queryset.update(status=new_status, updated_at=timezone.now())

    def increment(self, listing_id, field: str, by: int = 1) -> int:
        return self.filter(pk=listing_id).update(**{field: F(field) + by})

    def decrement_clamped(self, listing_id, field: str) -> int:
        """Decrement a counter without ever taking it below zero."""
        return self.filter(pk=listing_id, **{f"{field}__gt": 0}).update(**{field: F(field) - 1})


class Listing(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_ACTIVE = "active"
    STATUS_RESERVED = "reserved"
    STATUS_SOLD = "sold"
    STATUS_ARCHIVED = "archived"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_RESERVED, "Reserved"),
        (STATUS_SOLD, "Sold"),
        (STATUS_ARCHIVED, "Archived"),
    ]

    VERIFICATION_PENDING = "pending"
    VERIFICATION_VERIFIED = "verified"
    VERIFICATION_REJECTED = "rejected"

    VERIFICATION_CHOICES = [
        (VERIFICATION_PENDING, "Pending"),
        (VERIFICATION_VERIFIED, "Verified"),
        (VERIFICATION_REJECTED, "Rejected"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="listings")

    # Artwork description
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    artist_name = models.CharField(max_length=255)
    artist_bio = models.TextField(blank=True)
    medium = models.CharField(max_length=100, blank=True)
    style = models.CharField(max_length=100, blank=True)
    dimensions = models.CharField(max_length=100, blank=True)
    year_created = models.PositiveIntegerField(null=True, blank=True)
    primary_image_url = models.URLField(max_length=500, blank=True)

    # Commercial
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    currency = models.CharField(max_length=3, default=default_currency)

    # Lifecycle
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    # Trust badge
    verification_status = models.CharField(max_length=20, choices=VERIFICATION_CHOICES, default=VERIFICATION_PENDING)
    ai_confidence_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )

    # Derived counters (cache of the source-of-truth tables)
    view_count = models.PositiveIntegerField(default=0)
    favorite_count = models.PositiveIntegerField(default=0)
    average_rating = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00")), MaxValueValidator(Decimal("5.00"))],
    )
    total_reviews = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ListingManager()

    class Meta:
        app_label = "marketplace"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "-created_at"], name="listing_status_created_idx"),
            models.Index(fields=["seller", "status"], name="listing_seller_status_idx"),
            models.Index(fields=["verification_status"], name="listing_verification_idx"),
            models.Index(fields=["status", "price"], name="listing_status_price_idx"),
        ]

    def __str__(self):
        return f"{self.title} by {self.artist_name}"

    @property
    def is_purchasable(self) -> bool:
        return self.status == self.STATUS_ACTIVE


class ProvenanceEvent(models.Model):
    """
    Append-only history entry attached to a Listing.

    Rows can be created but never updated or deleted through the model API.
    """

    EVENT_TYPE_CHOICES = [
        ("creation", "Creation"),
        ("exhibition", "Exhibition"),
        ("sale", "Sale"),
        ("authentication", "Authentication"),
        ("restoration", "Restoration"),
        ("transfer", "Transfer"),
    ]

    listing = models.ForeignKey(Listing, on_delete=models.PROTECT, related_name="provenance_events")
    event_type = models.CharField(max_length=20, choices=EVENT_TYPE_CHOICES)
    event_date = models.DateField(null=True, blank=True)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    verified_by = models.CharField(max_length=255, blank=True)
    document_url = models.URLField(max_length=500, blank=True)
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["created_at", "id"]
        indexes = [models.Index(fields=["listing", "created_at"], name="provenance_listing_idx")]

    def __str__(self):
        return f"{self.get_event_type_display()} for {self.listing_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ConflictError("Provenance events are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ConflictError("Provenance events are append-only")

    @classmethod
    def valid_event_types(cls) -> list:
        return [choice[0] for choice in cls.EVENT_TYPE_CHOICES]
