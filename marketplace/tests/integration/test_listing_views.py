from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.models import Listing
from marketplace.tests.factories import (
    AdminFactory,
    DraftListingFactory,
    ListingFactory,
    ReviewFactory,
    SellerFactory,
    TransactionFactory,
    UserFactory,
)


class ListingViewsIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()
        self.seller = SellerFactory()
        self.listing = ListingFactory(seller=self.seller, price=Decimal("750.00"))
        self.list_url = reverse("marketplace:listing-list")

    def test_browse_anonymously(self):
        DraftListingFactory(seller=self.seller)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["id"], str(self.listing.id))

    def test_browse_with_invalid_ordering(self):
        response = self.client.get(self.list_url, {"order_by": "cheapest"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "validation_error")

    def test_retrieve_counts_view_and_reports_favorite(self):
        user = UserFactory()
        container.favorite_service().add(user, self.listing.id).unwrap()
        self.client.force_authenticate(user=user)

        response = self.client.get(reverse("marketplace:listing-detail", args=[self.listing.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["is_favorited"])
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.view_count, 1)

    def test_retrieve_unknown_listing(self):
        url = reverse("marketplace:listing-detail", args=["00000000-0000-0000-0000-000000000000"])
        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_listing(self):
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(
            self.list_url,
            {"title": "Quiet Harbour", "artist_name": "R. Alves", "price": "320.00", "medium": "Oil on canvas"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "draft")
        self.assertTrue(Listing.objects.filter(title="Quiet Harbour", seller=self.seller).exists())

    def test_create_requires_authentication(self):
        response = self.client.post(self.list_url, {"title": "X", "artist_name": "Y", "price": "1"}, format="json")

        self.assertIn(response.status_code, [status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN])

    def test_create_missing_title(self):
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(self.list_url, {"artist_name": "Y", "price": "10.00"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_partial_update_by_stranger_is_forbidden(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.patch(
            reverse("marketplace:listing-detail", args=[self.listing.id]), {"title": "Mine now"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_price_change_while_reserved_conflicts(self):
        TransactionFactory(listing=self.listing)
        Listing.objects.filter(pk=self.listing.pk).update(status=Listing.STATUS_RESERVED)
        self.client.force_authenticate(user=self.seller)

        response = self.client.patch(
            reverse("marketplace:listing-detail", args=[self.listing.id]), {"price": "900.00"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_archive_and_activate(self):
        self.client.force_authenticate(user=self.seller)

        archived = self.client.post(reverse("marketplace:listing-archive", args=[self.listing.id]))
        activated = self.client.post(reverse("marketplace:listing-activate", args=[self.listing.id]))

        self.assertEqual(archived.data["status"], "archived")
        self.assertEqual(activated.data["status"], "active")

    def test_mine_lists_every_status(self):
        DraftListingFactory(seller=self.seller)
        self.client.force_authenticate(user=self.seller)

        response = self.client.get(reverse("marketplace:listing-mine"))

        self.assertEqual(len(response.data), 2)

    def test_favorite_and_unfavorite(self):
        user = UserFactory()
        self.client.force_authenticate(user=user)
        favorite_url = reverse("marketplace:listing-favorite", args=[self.listing.id])

        first = self.client.post(favorite_url)
        second = self.client.post(favorite_url)
        removed = self.client.post(reverse("marketplace:listing-unfavorite", args=[self.listing.id]))

        self.assertEqual(first.data["favorite_count"], 1)
        self.assertFalse(second.data["created"])
        self.assertEqual(second.data["favorite_count"], 1)
        self.assertEqual(removed.data["favorite_count"], 0)

        favorites = self.client.get(reverse("marketplace:favorite-list"))
        self.assertEqual(favorites.data, [])

    def test_provenance_append_and_read(self):
        url = reverse("marketplace:listing-provenance", args=[self.listing.id])
        self.client.force_authenticate(user=self.seller)

        created = self.client.post(
            url, {"event_type": "exhibition", "event_date": "2019-05-01", "location": "Porto"}, format="json"
        )
        self.client.force_authenticate(user=None)
        history = self.client.get(url)

        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertEqual([event["event_type"] for event in history.data], ["exhibition"])

    def test_verify_requires_admin(self):
        url = reverse("marketplace:listing-verify", args=[self.listing.id])

        self.client.force_authenticate(user=self.seller)
        denied = self.client.post(url, {"outcome": "verified"}, format="json")
        self.client.force_authenticate(user=AdminFactory())
        allowed = self.client.post(url, {"outcome": "verified", "confidence_score": "92.00"}, format="json")

        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(allowed.status_code, status.HTTP_200_OK)
        self.assertEqual(allowed.data["verification_status"], "verified")

    def test_reviews_and_rating_distribution(self):
        ReviewFactory(listing=self.listing, rating=5)
        ReviewFactory(listing=self.listing, rating=3)

        reviews = self.client.get(reverse("marketplace:listing-reviews", args=[self.listing.id]))
        distribution = self.client.get(reverse("marketplace:listing-rating-distribution", args=[self.listing.id]))

        self.assertEqual(len(reviews.data), 2)
        self.assertEqual(distribution.data["distribution"][5], 1)
        self.assertEqual(distribution.data["distribution"][3], 1)
