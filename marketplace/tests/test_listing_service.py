from decimal import Decimal

from django.db.models import ProtectedError
from django.test import TestCase

from infrastructure.events.memory_event_bus import InMemoryEventBus
from marketplace.domain.exceptions import ConflictError
from marketplace.models import Listing, ProvenanceEvent
from marketplace.services import ErrorCodes, ListingService, TransactionService
from marketplace.tests.factories import (
    AdminFactory,
    DraftListingFactory,
    ListingFactory,
    ProvenanceEventFactory,
    SellerFactory,
    UserFactory,
)


class ListingLifecycleTest(TestCase):
    def setUp(self):
        self.event_bus = InMemoryEventBus()
        self.service = ListingService(event_bus=self.event_bus)
        self.seller = SellerFactory()

    def test_create_starts_as_draft(self):
        result = self.service.create(
            self.seller, {"title": "Harbour at Dusk", "artist_name": "M. Costa", "price": "1250.50"}
        )

        self.assertTrue(result.ok)
        listing = result.value
        self.assertEqual(listing.status, Listing.STATUS_DRAFT)
        self.assertEqual(listing.price, Decimal("1250.50"))
        self.assertEqual(listing.currency, "USD")
        self.assertEqual(listing.seller, self.seller)

    def test_create_promotes_buyer_to_both(self):
        buyer = UserFactory()

        self.service.create(buyer, {"title": "Study", "artist_name": "Anon", "price": "10"}).unwrap()

        buyer.refresh_from_db()
        self.assertEqual(buyer.user_type, "both")

    def test_create_requires_title_artist_and_price(self):
        for attrs in (
            {"artist_name": "A", "price": "10"},
            {"title": "T", "price": "10"},
            {"title": "T", "artist_name": "A"},
            {"title": "T", "artist_name": "A", "price": "0"},
            {"title": "T", "artist_name": "A", "price": "ten"},
        ):
            result = self.service.create(self.seller, attrs)
            self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR, attrs)

        self.assertFalse(Listing.objects.exists())

    def test_create_rejects_price_that_rounds_to_zero(self):
        result = self.service.create(self.seller, {"title": "T", "artist_name": "A", "price": "0.004"})

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)
        self.assertFalse(Listing.objects.exists())

    def test_create_rounds_price_half_up(self):
        listing = self.service.create(self.seller, {"title": "T", "artist_name": "A", "price": "12.345"}).unwrap()

        self.assertEqual(listing.price, Decimal("12.35"))

    def test_create_rejects_future_year(self):
        result = self.service.create(
            self.seller, {"title": "T", "artist_name": "A", "price": "10", "year_created": 3000}
        )

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)

    def test_activate_and_archive(self):
        listing = DraftListingFactory(seller=self.seller)

        activated = self.service.activate(listing.id, self.seller).unwrap()
        self.assertEqual(activated.status, Listing.STATUS_ACTIVE)

        archived = self.service.archive(listing.id, self.seller).unwrap()
        self.assertEqual(archived.status, Listing.STATUS_ARCHIVED)

        reactivated = self.service.activate(listing.id, self.seller).unwrap()
        self.assertEqual(reactivated.status, Listing.STATUS_ACTIVE)

        self.assertEqual(len(self.event_bus.events_of_type("listing.status_changed")), 3)

    def test_non_owner_cannot_archive(self):
        listing = ListingFactory(seller=self.seller)

        result = self.service.archive(listing.id, UserFactory())

        self.assertEqual(result.error, ErrorCodes.PERMISSION_DENIED)
        listing.refresh_from_db()
        self.assertEqual(listing.status, Listing.STATUS_ACTIVE)

    def test_admin_can_archive(self):
        listing = ListingFactory(seller=self.seller)

        self.assertTrue(self.service.archive(listing.id, AdminFactory()).ok)

    def test_archive_reserved_listing_conflicts(self):
        listing = ListingFactory(seller=self.seller)
        TransactionService(event_bus=self.event_bus).initiate(listing.id, UserFactory()).unwrap()

        result = self.service.archive(listing.id, self.seller)

        self.assertEqual(result.error, ErrorCodes.CONFLICT)
        self.assertIn("purchase is in progress", result.error_detail)
        listing.refresh_from_db()
        self.assertEqual(listing.status, Listing.STATUS_RESERVED)

    def test_sold_listing_cannot_be_reactivated(self):
        listing = ListingFactory(seller=self.seller, status=Listing.STATUS_SOLD)

        self.assertEqual(self.service.activate(listing.id, self.seller).error, ErrorCodes.CONFLICT)

    def test_update_descriptive_fields(self):
        listing = ListingFactory(seller=self.seller)

        updated = self.service.update(listing.id, self.seller, {"title": "Renamed", "medium": "Gouache"}).unwrap()

        self.assertEqual(updated.title, "Renamed")
        self.assertEqual(updated.medium, "Gouache")

    def test_update_ignores_status(self):
        listing = ListingFactory(seller=self.seller)

        updated = self.service.update(listing.id, self.seller, {"status": "sold", "title": "X"}).unwrap()

        self.assertEqual(updated.status, Listing.STATUS_ACTIVE)

    def test_price_change_refused_once_reserved(self):
        listing = ListingFactory(seller=self.seller, price=Decimal("500.00"))
        Listing.objects.filter(pk=listing.pk).update(status=Listing.STATUS_RESERVED)

        result = self.service.update(listing.id, self.seller, {"price": "900.00"})

        self.assertEqual(result.error, ErrorCodes.CONFLICT)
        listing.refresh_from_db()
        self.assertEqual(listing.price, Decimal("500.00"))

    def test_price_change_while_active(self):
        listing = ListingFactory(seller=self.seller, price=Decimal("500.00"))

        updated = self.service.update(listing.id, self.seller, {"price": "450"}).unwrap()

        self.assertEqual(updated.price, Decimal("450.00"))


class ListingBrowsingTest(TestCase):
    def setUp(self):
        self.service = ListingService(event_bus=InMemoryEventBus())
        self.seller = SellerFactory()

    def test_get_by_id_records_view(self):
        listing = ListingFactory(seller=self.seller)

        fetched = self.service.get_by_id(listing.id).unwrap()

        self.assertEqual(fetched.view_count, 1)
        listing.refresh_from_db()
        self.assertEqual(listing.view_count, 1)

    def test_get_by_id_without_tracking(self):
        listing = ListingFactory(seller=self.seller)

        self.service.get_by_id(listing.id, track_view=False).unwrap()

        listing.refresh_from_db()
        self.assertEqual(listing.view_count, 0)

    def test_get_unknown_listing(self):
        result = self.service.get_by_id("00000000-0000-0000-0000-000000000000")

        self.assertEqual(result.error, ErrorCodes.NOT_FOUND)

    def test_list_defaults_to_active_listings(self):
        ListingFactory.create_batch(3, seller=self.seller)
        DraftListingFactory(seller=self.seller)
        ListingFactory(seller=self.seller, status=Listing.STATUS_SOLD)

        page = self.service.list().unwrap()

        self.assertEqual(page["count"], 3)
        self.assertEqual(len(page["results"]), 3)
        self.assertEqual(page["offset"], 0)

    def test_list_filters_and_ordering(self):
        cheap = ListingFactory(seller=self.seller, price=Decimal("100.00"), style="Abstract")
        ListingFactory(seller=self.seller, price=Decimal("900.00"), style="Abstract")
        ListingFactory(seller=self.seller, price=Decimal("300.00"), style="Realism")

        page = self.service.list({"style": "abstract", "max_price": "500"}).unwrap()
        self.assertEqual([listing.id for listing in page["results"]], [cheap.id])

        ordered = self.service.list({"order_by": "price_desc"}).unwrap()
        prices = [listing.price for listing in ordered["results"]]
        self.assertEqual(prices, sorted(prices, reverse=True))

    def test_list_search_and_paging(self):
        ListingFactory(seller=self.seller, title="Blue Nude")
        ListingFactory.create_batch(4, seller=self.seller)

        self.assertEqual(self.service.list({"search": "blue nude"}).unwrap()["count"], 1)

        page = self.service.list({"limit": 2, "offset": 2}).unwrap()
        self.assertEqual(len(page["results"]), 2)
        self.assertEqual(page["count"], 5)

    def test_list_rejects_bad_parameters(self):
        self.assertEqual(self.service.list({"order_by": "random"}).error, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(self.service.list({"limit": "abc"}).error, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(self.service.list({"status": "deleted"}).error, ErrorCodes.VALIDATION_ERROR)

    def test_list_for_seller_includes_every_status(self):
        ListingFactory(seller=self.seller)
        DraftListingFactory(seller=self.seller)
        ListingFactory()

        self.assertEqual(len(self.service.list_for_seller(self.seller.id).unwrap()), 2)


class ProvenanceTest(TestCase):
    def setUp(self):
        self.service = ListingService(event_bus=InMemoryEventBus())
        self.seller = SellerFactory()
        self.listing = ListingFactory(seller=self.seller)

    def test_owner_appends_events_in_order(self):
        self.service.add_provenance_event(
            self.listing.id, self.seller, {"event_type": "creation", "event_date": "1998-04-01"}
        ).unwrap()
        self.service.add_provenance_event(
            self.listing.id, self.seller, {"event_type": "exhibition", "location": "Porto"}
        ).unwrap()

        history = self.service.list_provenance(self.listing.id).unwrap()

        self.assertEqual([event.event_type for event in history], ["creation", "exhibition"])
        self.assertEqual(history[0].recorded_by, self.seller)

    def test_rejects_unknown_event_type_and_bad_date(self):
        bad_type = self.service.add_provenance_event(self.listing.id, self.seller, {"event_type": "theft"})
        bad_date = self.service.add_provenance_event(
            self.listing.id, self.seller, {"event_type": "creation", "event_date": "April 1998"}
        )

        self.assertEqual(bad_type.error, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(bad_date.error, ErrorCodes.VALIDATION_ERROR)

    def test_stranger_cannot_add_provenance(self):
        result = self.service.add_provenance_event(self.listing.id, UserFactory(), {"event_type": "creation"})

        self.assertEqual(result.error, ErrorCodes.PERMISSION_DENIED)

    def test_events_are_append_only(self):
        event = ProvenanceEventFactory(listing=self.listing)

        event.description = "rewritten"
        with self.assertRaises(ConflictError):
            event.save()
        with self.assertRaises(ConflictError):
            event.delete()

        self.assertEqual(ProvenanceEvent.objects.count(), 1)

    def test_listing_with_history_cannot_be_deleted(self):
        ProvenanceEventFactory(listing=self.listing)

        with self.assertRaises(ProtectedError):
            self.listing.delete()

        self.assertTrue(Listing.objects.filter(pk=self.listing.pk).exists())
        self.assertEqual(ProvenanceEvent.objects.count(), 1)
