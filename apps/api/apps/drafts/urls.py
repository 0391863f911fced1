"""Draft sale URLs."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter
from .views import DraftSaleViewSet

router = SimpleRouter()
router.register(r'', DraftSaleViewSet, basename='draft-sale')

urlpatterns = [
    path('', include(router.urls)),
]
