"""Product views."""
from rest_framework import filters, mixins, viewsets
from .models import Product
from .serializers import ProductSerializer
from apps.core.views import CorrelatedViewMixin
from apps.stock.permissions import IsPharmacyStaff


class ProductViewSet(CorrelatedViewMixin,
                     mixins.ListModelMixin,
                     mixins.CreateModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.UpdateModelMixin,
                     viewsets.GenericViewSet):
    """Product catalog. Products referenced by the ledger are never deleted."""

    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    permission_classes = [IsPharmacyStaff]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name', 'sku', 'gtin', 'manufacturer']
    ordering_fields = ['name', 'price', 'created_at']
    ordering = ['name']
