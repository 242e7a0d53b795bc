from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views import prometheus_metrics
from .api.views.admin_views import AdminViewSet
from .catalog.api.views.favorite_views import FavoriteViewSet
from .catalog.api.views.listing_views import ListingViewSet
from .catalog.api.views.profile_views import ProfileViewSet
from .catalog.api.views.review_views import ReviewViewSet
from .ordering.api.views.transaction_views import TransactionViewSet


# Create the main router
router = DefaultRouter()
router.register(r"listings", ListingViewSet, basename="listing")
router.register(r"transactions", TransactionViewSet, basename="transaction")
router.register(r"reviews", ReviewViewSet, basename="review")
router.register(r"favorites", FavoriteViewSet, basename="favorite")
router.register(r"profiles", ProfileViewSet, basename="profile")
router.register(r"admin", AdminViewSet, basename="admin")

app_name = "marketplace"

urlpatterns = [
    # Prometheus metrics endpoint
    path("metrics/", prometheus_metrics.marketplace_prometheus_metrics, name="marketplace-metrics"),
    # Main API routes
    path("", include(router.urls)),
]
