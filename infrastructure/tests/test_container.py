"""
Service Container Tests
========================

Unit tests for dependency injection container.
"""

from django.test import TestCase, override_settings

from infrastructure.container import ServiceContainer, container
from infrastructure.events import InMemoryEventBus
from marketplace.services import (
    FavoriteService,
    ListingService,
    ProfileService,
    ReputationService,
    ReviewService,
    StatsService,
    TransactionService,
    VerificationService,
)


class ServiceContainerTest(TestCase):
    """Test ServiceContainer implementation."""

    def setUp(self):
        """Set up test fixtures."""
        # Reset container before each test
        container.reset()

    def tearDown(self):
        container.reset()

    def test_container_is_singleton(self):
        """Test that ServiceContainer is a singleton."""
        container1 = ServiceContainer()
        container2 = ServiceContainer()

        self.assertIs(container1, container2)
        self.assertIs(container1, container)

    @override_settings(INFRASTRUCTURE={"EVENT_BUS_BACKEND": "memory"})
    def test_get_event_bus(self):
        """Test getting the event bus from container."""
        bus = container.event_bus()

        self.assertIsInstance(bus, InMemoryEventBus)
        self.assertIs(bus, container.event_bus())

    def test_services_are_cached(self):
        """Each accessor builds its service once."""
        accessors = {
            container.reputation_service: ReputationService,
            container.verification_service: VerificationService,
            container.listing_service: ListingService,
            container.transaction_service: TransactionService,
            container.review_service: ReviewService,
            container.favorite_service: FavoriteService,
            container.stats_service: StatsService,
            container.profile_service: ProfileService,
        }

        for accessor, service_class in accessors.items():
            service = accessor()
            self.assertIsInstance(service, service_class)
            self.assertIs(service, accessor())

    def test_services_share_dependencies(self):
        """Services are wired to the container's own collaborators."""
        bus = container.event_bus()

        self.assertIs(container.transaction_service().event_bus, bus)
        self.assertIs(container.listing_service().event_bus, bus)
        self.assertIs(container.listing_service().verification_service, container.verification_service())
        self.assertIs(container.review_service().reputation_service, container.reputation_service())

    def test_container_reset(self):
        """Test resetting container clears cached services."""
        service1 = container.transaction_service()
        bus1 = container.event_bus()

        container.reset()

        self.assertIsNot(service1, container.transaction_service())
        self.assertIsNot(bus1, container.event_bus())
