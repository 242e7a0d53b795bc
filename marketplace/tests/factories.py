import random
import uuid
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from faker import Faker

from marketplace.models import Endorsement, Favorite, Listing, ProvenanceEvent, Review, Transaction


User = get_user_model()
fake = Faker()  # Instantiate Faker once


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = User

    id = factory.LazyFunction(uuid.uuid4)
    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user_{n}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "defaultpassword")
    is_active = True
    role = "user"
    user_type = "buyer"


class SellerFactory(UserFactory):
    role = "seller"
    user_type = "seller"
    username = factory.Sequence(lambda n: f"seller_{n}")
    email = factory.Sequence(lambda n: f"seller_{n}@example.com")
    gallery_name = factory.Faker("company")


class AdminFactory(UserFactory):
    role = "admin"
    is_superuser = True
    is_staff = True
    username = factory.Sequence(lambda n: f"admin_{n}")
    email = factory.Sequence(lambda n: f"admin_{n}@example.com")


class ListingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Listing

    id = factory.LazyFunction(uuid.uuid4)
    seller = factory.SubFactory(SellerFactory)
    title = factory.Sequence(lambda n: f"Untitled No. {n}")
    description = factory.Faker("paragraph", nb_sentences=3)
    artist_name = factory.Faker("name")
    medium = factory.Iterator(["Oil on canvas", "Watercolor", "Bronze", "Charcoal"])
    style = factory.Iterator(["Abstract", "Impressionism", "Contemporary"])
    year_created = factory.Faker("random_int", min=1950, max=2020)
    price = factory.LazyFunction(lambda: Decimal(f"{random.randint(100, 5000)}.00"))
    currency = "USD"
    status = Listing.STATUS_ACTIVE


class DraftListingFactory(ListingFactory):
    status = Listing.STATUS_DRAFT


class TransactionFactory(factory.django.DjangoModelFactory):
    """
    A live transaction on a reserved listing.

    Built directly (not through TransactionService) for tests that need a
    specific starting state.
    """

    class Meta:
        model = Transaction

    id = factory.LazyFunction(uuid.uuid4)
    listing = factory.SubFactory(ListingFactory, status=Listing.STATUS_RESERVED)
    buyer = factory.SubFactory(UserFactory)
    seller = factory.LazyAttribute(lambda o: o.listing.seller)
    amount = factory.LazyAttribute(lambda o: o.listing.price)
    platform_fee = factory.LazyAttribute(lambda o: (o.amount * Decimal("0.05")).quantize(Decimal("0.01")))
    currency = "USD"
    status = Transaction.STATUS_PENDING
    escrow_status = Transaction.ESCROW_PENDING
    delivery_status = Transaction.DELIVERY_PENDING
    shipping_address = factory.LazyFunction(
        lambda: {
            "street": fake.street_address(),
            "city": fake.city(),
            "country": fake.country(),
            "postal_code": fake.postcode(),
        }
    )


class CompletedTransactionFactory(TransactionFactory):
    listing = factory.SubFactory(ListingFactory, status=Listing.STATUS_SOLD)
    status = Transaction.STATUS_COMPLETED
    escrow_status = Transaction.ESCROW_RELEASED
    delivery_status = Transaction.DELIVERY_CONFIRMED


class ReviewFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Review

    listing = factory.SubFactory(ListingFactory)
    seller = factory.LazyAttribute(lambda o: o.listing.seller if o.listing else None)
    reviewer = factory.SubFactory(UserFactory)
    rating = factory.Faker("random_int", min=1, max=5)
    title = factory.Faker("sentence", nb_words=5)
    content = factory.Faker("paragraph", nb_sentences=2)
    is_verified_purchase = False


class FavoriteFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Favorite

    user = factory.SubFactory(UserFactory)
    listing = factory.SubFactory(ListingFactory)


class ProvenanceEventFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ProvenanceEvent

    listing = factory.SubFactory(ListingFactory)
    event_type = "exhibition"
    event_date = factory.Faker("date_object")
    description = factory.Faker("sentence", nb_words=8)
    location = factory.Faker("city")


class EndorsementFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Endorsement

    listing = factory.SubFactory(ListingFactory)
    expert_name = factory.Faker("name")
    expert_title = "Curator"
    endorsement_text = factory.Faker("paragraph", nb_sentences=2)
    authenticity_confirmed = True
