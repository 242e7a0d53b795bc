from .interaction import Endorsement, Favorite, Review
from .listing import Listing, ListingManager, ProvenanceEvent


__all__ = [
    "Endorsement",
    "Favorite",
    "Listing",
    "ListingManager",
    "ProvenanceEvent",
    "Review",
]
