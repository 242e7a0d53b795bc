from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.tests.factories import ListingFactory, ReviewFactory, SellerFactory, UserFactory


class ProfileViewsIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()
        self.seller = SellerFactory(total_sales=3, total_purchases=1)
        self.me_url = reverse("marketplace:profile-me")

    def test_public_profile(self):
        listing = ListingFactory(seller=self.seller)
        ReviewFactory(listing=listing, seller=self.seller, rating=4)

        response = self.client.get(reverse("marketplace:profile-detail", args=[self.seller.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user"]["total_sales"], 3)
        self.assertEqual(response.data["user"]["total_purchases"], 1)
        self.assertNotIn("email", response.data["user"])
        self.assertEqual(len(response.data["listings"]), 1)
        self.assertEqual(len(response.data["reviews"]), 1)

    def test_public_profile_unknown_user(self):
        url = reverse("marketplace:profile-detail", args=["00000000-0000-0000-0000-000000000000"])

        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)

    def test_me_requires_authentication(self):
        response = self.client.get(self.me_url)

        self.assertIn(response.status_code, [status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN])

    def test_get_and_update_me(self):
        user = UserFactory()
        self.client.force_authenticate(user=user)

        fetched = self.client.get(self.me_url)
        updated = self.client.patch(self.me_url, {"bio": "Painter", "user_type": "seller"}, format="json")

        self.assertEqual(fetched.data["email"], user.email)
        self.assertEqual(updated.status_code, status.HTTP_200_OK)
        self.assertEqual(updated.data["bio"], "Painter")
        self.assertEqual(updated.data["user_type"], "seller")

    def test_update_me_rejects_bad_user_type(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.patch(self.me_url, {"user_type": "dealer"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
