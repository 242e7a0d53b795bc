"""
Dependency Injection Container
================================

Simple service locator for the marketplace services and the infrastructure
they depend on. Services are created lazily, wired together once and cached.

Usage:
    from infrastructure.container import container

    # In a view or task
    result = container.transaction_service().initiate(listing_id, request.user)
    bus = container.event_bus()
"""

import logging
from typing import Optional

from .events import EventBus, get_event_bus, reset_event_bus


logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for marketplace services.

    Implements lazy initialization and caching of service instances.
    Singleton: every ``ServiceContainer()`` returns the same object.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._clear()
            self._initialized = True
            logger.info("Service container initialized")

    def _clear(self):
        self._event_bus: Optional[EventBus] = None
        self._reputation_service = None
        self._verification_service = None
        self._listing_service = None
        self._transaction_service = None
        self._review_service = None
        self._favorite_service = None
        self._stats_service = None
        self._profile_service = None

    def event_bus(self) -> EventBus:
        """
        Get the event bus configured by INFRASTRUCTURE["EVENT_BUS_BACKEND"].

        Returns:
            EventBus implementation (cached)
        """
        if self._event_bus is None:
            self._event_bus = get_event_bus()
            logger.debug(f"Using event bus: {type(self._event_bus).__name__}")
        return self._event_bus

    def reputation_service(self):
        """Get ReputationService instance."""
        if self._reputation_service is None:
            from marketplace.services import ReputationService

            self._reputation_service = ReputationService()
            logger.debug("Created ReputationService")
        return self._reputation_service

    def verification_service(self):
        """Get VerificationService instance."""
        if self._verification_service is None:
            from marketplace.services import VerificationService

            self._verification_service = VerificationService(event_bus=self.event_bus())
            logger.debug("Created VerificationService")
        return self._verification_service

    def listing_service(self):
        """Get ListingService instance."""
        if self._listing_service is None:
            from marketplace.services import ListingService

            # ListingService delegates set_verification to VerificationService
            self._listing_service = ListingService(
                verification_service=self.verification_service(), event_bus=self.event_bus()
            )
            logger.debug("Created ListingService")
        return self._listing_service

    def transaction_service(self):
        """Get TransactionService instance."""
        if self._transaction_service is None:
            from marketplace.services import TransactionService

            self._transaction_service = TransactionService(event_bus=self.event_bus())
            logger.debug("Created TransactionService")
        return self._transaction_service

    def review_service(self):
        """Get ReviewService instance."""
        if self._review_service is None:
            from marketplace.services import ReviewService

            self._review_service = ReviewService(
                reputation_service=self.reputation_service(), event_bus=self.event_bus()
            )
            logger.debug("Created ReviewService")
        return self._review_service

    def favorite_service(self):
        """Get FavoriteService instance."""
        if self._favorite_service is None:
            from marketplace.services import FavoriteService

            self._favorite_service = FavoriteService()
            logger.debug("Created FavoriteService")
        return self._favorite_service

    def stats_service(self):
        if self._stats_service is None:
            from marketplace.services import StatsService

            self._stats_service = StatsService()
        return self._stats_service

    def profile_service(self):
        """Get ProfileService instance."""
        if self._profile_service is None:
            from marketplace.services import ProfileService

            self._profile_service = ProfileService()
            logger.debug("Created ProfileService")
        return self._profile_service

    def reset(self):
        """
        Reset all cached service instances and the event bus.

        Useful for testing or when switching between environments.
        """
        self._clear()
        reset_event_bus()
        logger.info("Service container reset")


# Global singleton instance
container = ServiceContainer()
