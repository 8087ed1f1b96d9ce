from rest_framework.routers import DefaultRouter
from .views import RenovationRequestViewSet
from .bid_views import BidViewSet


router = DefaultRouter()
router.register(r"renovation-requests", RenovationRequestViewSet, basename="renovation-requests")
router.register(r"bids", BidViewSet, basename="bids")

urlpatterns = router.urls
