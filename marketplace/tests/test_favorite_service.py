from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from marketplace.models import Favorite, Listing
from marketplace.services import ErrorCodes, FavoriteService
from marketplace.tests.factories import FavoriteFactory, ListingFactory, UserFactory


class FavoriteServiceTest(TestCase):
    def setUp(self):
        self.service = FavoriteService()
        self.user = UserFactory()
        self.listing = ListingFactory()

    def test_add_is_idempotent(self):
        first = self.service.add(self.user, self.listing.id).unwrap()
        second = self.service.add(self.user, self.listing.id).unwrap()

        self.assertTrue(first["created"])
        self.assertFalse(second["created"])
        self.assertEqual(second["favorite_count"], 1)
        self.assertEqual(Favorite.objects.filter(user=self.user, listing=self.listing).count(), 1)

    def test_remove_is_idempotent(self):
        self.service.add(self.user, self.listing.id).unwrap()

        first = self.service.remove(self.user, self.listing.id).unwrap()
        second = self.service.remove(self.user, self.listing.id).unwrap()

        self.assertTrue(first["removed"])
        self.assertFalse(second["removed"])
        self.assertEqual(second["favorite_count"], 0)

    def test_count_tracks_distinct_users(self):
        for user in UserFactory.create_batch(3):
            self.service.add(user, self.listing.id).unwrap()

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.favorite_count, 3)

    def test_remove_never_takes_count_below_zero(self):
        FavoriteFactory(user=self.user, listing=self.listing)  # row exists but counter was never bumped

        result = self.service.remove(self.user, self.listing.id).unwrap()

        self.assertTrue(result["removed"])
        self.assertEqual(result["favorite_count"], 0)

    def test_recount_repairs_drift(self):
        FavoriteFactory.create_batch(2, listing=self.listing)
        Listing.objects.filter(pk=self.listing.pk).update(favorite_count=7)

        self.assertEqual(self.service.recount(self.listing.id).unwrap(), 2)
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.favorite_count, 2)

    def test_unknown_listing(self):
        result = self.service.add(self.user, "00000000-0000-0000-0000-000000000000")

        self.assertEqual(result.error, ErrorCodes.NOT_FOUND)

    def test_list_and_is_favorited(self):
        other = ListingFactory()
        self.service.add(self.user, self.listing.id).unwrap()
        self.service.add(self.user, other.id).unwrap()

        listings = self.service.list_for_user(self.user).unwrap()

        self.assertEqual({listing.id for listing in listings}, {self.listing.id, other.id})
        self.assertTrue(self.service.is_favorited(self.user, self.listing.id))
        self.assertFalse(self.service.is_favorited(UserFactory(), self.listing.id))
        self.assertFalse(self.service.is_favorited(AnonymousUser(), self.listing.id))
