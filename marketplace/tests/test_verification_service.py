from decimal import Decimal

from django.test import TestCase

from infrastructure.events.memory_event_bus import InMemoryEventBus
from marketplace.models import Listing
from marketplace.services import ErrorCodes, StatsService, TransactionService, VerificationService
from marketplace.tests.factories import (
    AdminFactory,
    CompletedTransactionFactory,
    DraftListingFactory,
    ListingFactory,
    SellerFactory,
    UserFactory,
)


class VerificationServiceTest(TestCase):
    def setUp(self):
        self.event_bus = InMemoryEventBus()
        self.service = VerificationService(event_bus=self.event_bus)
        self.admin = AdminFactory()
        self.listing = ListingFactory()

    def test_admin_verifies_with_confidence_score(self):
        listing = self.service.verify(self.listing.id, self.admin, "verified", "87.5").unwrap()

        self.assertEqual(listing.verification_status, Listing.VERIFICATION_VERIFIED)
        self.assertEqual(listing.ai_confidence_score, Decimal("87.50"))
        self.assertEqual(len(self.event_bus.events_of_type("listing.verification_changed")), 1)

    def test_score_ignored_for_rejection(self):
        listing = self.service.verify(self.listing.id, self.admin, "rejected", 40).unwrap()

        self.assertEqual(listing.verification_status, Listing.VERIFICATION_REJECTED)
        self.assertIsNone(listing.ai_confidence_score)

    def test_non_admin_is_denied(self):
        for actor in (self.listing.seller, UserFactory(), None):
            result = self.service.verify(self.listing.id, actor, "verified")
            self.assertEqual(result.error, ErrorCodes.PERMISSION_DENIED)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.verification_status, Listing.VERIFICATION_PENDING)

    def test_invalid_outcome_and_score(self):
        self.assertEqual(
            self.service.verify(self.listing.id, self.admin, "approved").error, ErrorCodes.VALIDATION_ERROR
        )
        self.assertEqual(
            self.service.verify(self.listing.id, self.admin, "verified", 101).error, ErrorCodes.VALIDATION_ERROR
        )

    def test_verification_allowed_while_reserved(self):
        TransactionService(event_bus=self.event_bus).initiate(self.listing.id, UserFactory()).unwrap()

        listing = self.service.verify(self.listing.id, self.admin, "verified").unwrap()

        self.assertEqual(listing.status, Listing.STATUS_RESERVED)
        self.assertEqual(listing.verification_status, Listing.VERIFICATION_VERIFIED)

    def test_pending_queue_excludes_drafts_and_decided(self):
        DraftListingFactory()
        ListingFactory(verification_status=Listing.VERIFICATION_VERIFIED)

        pending = self.service.list_pending(self.admin).unwrap()

        self.assertEqual([listing.id for listing in pending], [self.listing.id])

    def test_verify_seller_badge(self):
        seller = SellerFactory()

        updated = self.service.verify_seller(seller.id, self.admin).unwrap()
        self.assertTrue(updated.is_verified_seller)

        revoked = self.service.verify_seller(seller.id, self.admin, verified=False).unwrap()
        self.assertFalse(revoked.is_verified_seller)

        self.assertEqual(self.service.verify_seller(seller.id, seller).error, ErrorCodes.PERMISSION_DENIED)

    def test_endorsements(self):
        created = self.service.add_endorsement(
            self.listing.id,
            self.admin,
            {"expert_name": "Dr. Ana Reis", "endorsement_text": "Consistent with the artist's 1960s period."},
        ).unwrap()

        self.assertEqual(created.recorded_by, self.admin)
        self.assertEqual([e.id for e in self.service.list_endorsements(self.listing.id).unwrap()], [created.id])
        self.assertEqual(
            self.service.add_endorsement(self.listing.id, self.admin, {"expert_name": "X"}).error,
            ErrorCodes.VALIDATION_ERROR,
        )


class StatsServiceTest(TestCase):
    def setUp(self):
        self.service = StatsService()
        self.admin = AdminFactory()

    def test_marketplace_stats(self):
        ListingFactory(price=Decimal("100.00"))
        ListingFactory(price=Decimal("300.00"))
        DraftListingFactory()
        CompletedTransactionFactory(amount=Decimal("1000.00"), platform_fee=Decimal("50.00"))

        stats = self.service.marketplace_stats(self.admin).unwrap()

        self.assertEqual(stats["listings"]["active"], 2)
        self.assertEqual(stats["listings"]["active_total_value"], Decimal("400.00"))
        self.assertEqual(stats["listings"]["active_average_price"], Decimal("200.00"))
        self.assertEqual(stats["listings"]["by_status"]["sold"], 1)
        self.assertEqual(stats["transactions"]["completed"], 1)
        self.assertEqual(stats["transactions"]["completed_volume"], Decimal("1000.00"))
        self.assertEqual(stats["transactions"]["platform_fees"], Decimal("50.00"))
        self.assertEqual(stats["transactions"]["live"], 0)

    def test_stats_require_admin(self):
        self.assertEqual(self.service.marketplace_stats(UserFactory()).error, ErrorCodes.PERMISSION_DENIED)
