from prometheus_client import Counter, Histogram


# Transaction Engine
transaction_transitions_total = Counter(
    "marketplace_transaction_transitions_total",
    "Transaction state machine events by outcome",
    ["event", "outcome"],
)
reservation_conflicts_total = Counter(
    "marketplace_reservation_conflicts_total",
    "Purchase attempts rejected because the listing could not be reserved",
    ["reason"],
)
expired_transactions_total = Counter(
    "marketplace_expired_transactions_total", "Pending transactions released by the expiry job"
)
sale_value = Histogram(
    "marketplace_sale_value",
    "Completed sale amount distribution",
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 50000, float("inf")],
)

# Listing lifecycle
listing_status_changes_total = Counter(
    "marketplace_listing_status_changes_total", "Listing status transitions", ["to_status"]
)
view_tracking_failures_total = Counter(
    "marketplace_view_tracking_failures_total", "View count increments that failed and were dropped"
)

# Derived state
aggregate_refresh_failures_total = Counter(
    "marketplace_aggregate_refresh_failures_total",
    "Rating aggregate recomputations that failed after a review was written",
    ["target"],
)
favorite_count_clamped_total = Counter(
    "marketplace_favorite_count_clamped_total",
    "Favorite removals that found the denormalized count already at zero",
)
