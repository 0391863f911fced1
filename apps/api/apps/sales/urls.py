"""Sales URLs."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter
from .views import SaleViewSet

router = SimpleRouter()
router.register(r'', SaleViewSet, basename='sale')

urlpatterns = [
    path('', include(router.urls)),
]
