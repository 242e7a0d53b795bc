from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .listing import Listing


class Review(models.Model):
    """
    Rating and text written by a buyer about a listing, a seller, or both.

    At least one of ``listing`` and ``seller`` is set; the service layer
    enforces it before the row is written.
    """

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="reviews", null=True, blank=True)
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews_received",
        null=True,
        blank=True,
    )
    reviewer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reviews_written")
    transaction = models.ForeignKey(
        "marketplace.Transaction",
        on_delete=models.SET_NULL,
        related_name="reviews",
        null=True,
        blank=True,
    )
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    title = models.CharField(max_length=255, blank=True)
    content = models.TextField(blank=True)
    is_verified_purchase = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["listing", "-created_at"], name="review_listing_idx"),
            models.Index(fields=["seller", "-created_at"], name="review_seller_idx"),
            models.Index(fields=["reviewer"], name="review_reviewer_idx"),
        ]

    def __str__(self):
        target = self.listing_id or self.seller_id
        return f"{self.rating}/5 review of {target} by {self.reviewer_id}"


class Favorite(models.Model):
    """(user, listing) membership pair. Rows are inserted and deleted, never updated."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="favorites")
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="favorited_by")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "listing"], name="unique_favorite_per_user_listing"),
        ]
        indexes = [models.Index(fields=["user", "-created_at"], name="favorite_user_idx")]

    def __str__(self):
        return f"{self.user_id} favorited {self.listing_id}"


class Endorsement(models.Model):
    """Expert statement recorded against a listing by an administrator."""

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="endorsements")
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="endorsements_recorded",
    )
    expert_name = models.CharField(max_length=255)
    expert_title = models.CharField(max_length=255, blank=True)
    expert_credentials = models.TextField(blank=True)
    endorsement_text = models.TextField()
    authenticity_confirmed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Endorsement of {self.listing_id} by {self.expert_name}"
