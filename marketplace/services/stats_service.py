"""
StatsService - Marketplace-wide figures for the admin dashboard
"""

from decimal import Decimal
from typing import Dict

from django.contrib.auth import get_user_model
from django.db.models import Avg, Count, Q, Sum

from marketplace.models import Listing, Transaction

from .base import BaseService, ServiceResult, service_ok


User = get_user_model()

ZERO = Decimal("0.00")


class StatsService(BaseService):
    @BaseService.log_performance
    @BaseService.requires_admin
    def marketplace_stats(self, actor) -> ServiceResult[Dict]:
        """
        Aggregate counts and volumes across the marketplace (admin only).

        Returns:
            ServiceResult with {"listings": {...}, "users": {...}, "transactions": {...}}
        """
        try:
            active = Listing.objects.filter(status=Listing.STATUS_ACTIVE).aggregate(
                count=Count("id"), total_value=Sum("price"), average_price=Avg("price")
            )
            by_status = dict(Listing.objects.values_list("status").annotate(count=Count("id")).order_by())

            users = User.objects.aggregate(
                total=Count("id"),
                sellers=Count("id", filter=Q(user_type__in=["seller", "both"]) | Q(role="seller")),
                verified_sellers=Count("id", filter=Q(is_verified_seller=True)),
            )

            completed = Transaction.objects.filter(status=Transaction.STATUS_COMPLETED).aggregate(
                count=Count("id"), volume=Sum("amount"), fees=Sum("platform_fee")
            )
            live = Transaction.objects.live().count()

            average_price = active["average_price"]
            return service_ok(
                {
                    "listings": {
                        "active": active["count"],
                        "active_total_value": active["total_value"] or ZERO,
                        "active_average_price": Decimal(str(average_price)).quantize(ZERO) if average_price else ZERO,
                        "by_status": by_status,
                        "pending_verification": Listing.objects.filter(
                            verification_status=Listing.VERIFICATION_PENDING
                        ).count(),
                    },
                    "users": users,
                    "transactions": {
                        "completed": completed["count"],
                        "completed_volume": completed["volume"] or ZERO,
                        "platform_fees": completed["fees"] or ZERO,
                        "live": live,
                    },
                }
            )

        except Exception as e:
            return self.error_result(e, "computing marketplace stats")
