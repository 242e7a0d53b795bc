from marketplace.catalog.domain.models import Endorsement, Favorite, Listing, ProvenanceEvent, Review
from marketplace.ordering.domain.models import Transaction


__all__ = [
    "Endorsement",
    "Favorite",
    "Listing",
    "ProvenanceEvent",
    "Review",
    "Transaction",
]
