"""Stock URLs."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter
from .views import (
    StockBatchViewSet,
    StockImportViewSet,
    StockMovementViewSet,
    StockSummaryViewSet,
)

router = SimpleRouter()
router.register(r'movements', StockMovementViewSet, basename='stock-movement')
router.register(r'batches', StockBatchViewSet, basename='stock-batch')
router.register(r'summary', StockSummaryViewSet, basename='stock-summary')
router.register(r'import', StockImportViewSet, basename='stock-import')

urlpatterns = [
    path('', include(router.urls)),
]
