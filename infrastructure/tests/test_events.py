"""
Event Bus Tests
================

Unit tests for the event bus backends and the domain event publishing helper.
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from infrastructure.events import EventBusFactory, InMemoryEventBus, RedisEventBus, get_event_bus, reset_event_bus
from marketplace.domain.events import TransactionCompletedEvent


class EventBusFactoryTest(TestCase):
    def tearDown(self):
        reset_event_bus()

    def test_create_memory_backend(self):
        self.assertIsInstance(EventBusFactory.create("memory"), InMemoryEventBus)

    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_create_redis_backend(self, mock_from_url):
        bus = EventBusFactory.create("redis")

        self.assertIsInstance(bus, RedisEventBus)
        mock_from_url.assert_called_once()

    def test_invalid_backend(self):
        with self.assertRaises(ValueError):
            EventBusFactory.create("kafka")

    @override_settings(INFRASTRUCTURE={"EVENT_BUS_BACKEND": "memory"})
    def test_singleton_until_reset(self):
        reset_event_bus()
        bus = get_event_bus()

        self.assertIs(bus, get_event_bus())
        reset_event_bus()
        self.assertIsNot(bus, get_event_bus())


class InMemoryEventBusTest(TestCase):
    def setUp(self):
        self.bus = InMemoryEventBus()

    def test_publish_records_and_dispatches(self):
        handler = MagicMock()
        self.bus.subscribe("transaction.completed", handler)

        self.bus.publish("transaction.completed", {"transaction_id": "tx-1"})

        handler.assert_called_once()
        envelope = handler.call_args[0][0]
        self.assertEqual(envelope["event_type"], "transaction.completed")
        self.assertEqual(envelope["payload"], {"transaction_id": "tx-1"})
        self.assertEqual(len(self.bus.events_of_type("transaction.completed")), 1)

    def test_failing_handler_does_not_stop_others(self):
        second = MagicMock()
        self.bus.subscribe("review.created", MagicMock(side_effect=RuntimeError("boom")))
        self.bus.subscribe("review.created", second)

        self.bus.publish("review.created", {})

        second.assert_called_once()

    def test_subscribe_is_idempotent(self):
        handler = MagicMock()
        self.bus.subscribe("review.created", handler)
        self.bus.subscribe("review.created", handler)

        self.bus.publish("review.created", {})

        handler.assert_called_once()

    def test_clear(self):
        self.bus.publish("review.created", {})
        self.bus.clear()

        self.assertEqual(self.bus.published, [])


class RedisEventBusTest(TestCase):
    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_publish_serializes_to_channel(self, mock_from_url):
        client = MagicMock()
        mock_from_url.return_value = client
        bus = RedisEventBus("redis://example:6379/0")

        bus.publish("transaction.initiated", {"amount": Decimal("10.00")})

        channel, message = client.publish.call_args[0]
        self.assertEqual(channel, "events.transaction.initiated")
        self.assertIn('"amount": "10.00"', message)

    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_publish_failure_is_swallowed(self, mock_from_url):
        client = MagicMock()
        client.publish.side_effect = ConnectionError("redis down")
        mock_from_url.return_value = client

        RedisEventBus("redis://example:6379/0").publish("transaction.initiated", {})


class DomainEventPublishTest(TestCase):
    def test_publish_never_raises(self):
        bus = MagicMock()
        bus.publish.side_effect = RuntimeError("bus down")
        event = TransactionCompletedEvent(
            transaction_id="tx-1", listing_id="l-1", buyer_id="b-1", seller_id="s-1", amount=Decimal("5.00")
        )

        self.assertFalse(event.publish(bus))

    def test_payload_shape(self):
        bus = InMemoryEventBus()
        TransactionCompletedEvent(
            transaction_id="tx-1", listing_id="l-1", buyer_id="b-1", seller_id="s-1", amount=Decimal("5.00")
        ).publish(bus)

        payload = bus.events_of_type("transaction.completed")[0]["payload"]
        self.assertEqual(payload["amount"], "5.00")
        self.assertEqual(payload["listing_id"], "l-1")
