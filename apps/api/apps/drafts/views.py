"""Draft sale views."""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.views import CorrelatedViewMixin
from apps.sales.permissions import CanSell

from . import services
from .serializers import DraftSaleTabSerializer, DraftSyncSerializer


class DraftSaleViewSet(CorrelatedViewMixin, viewsets.GenericViewSet):
    """
    Open point-of-sale tabs.

    GET  /draft-sales/          open tabs, active tab, next label counter
    POST /draft-sales/sync/     replace the open tabs with the pushed set
    DELETE /draft-sales/{tab_id}/
    """

    serializer_class = DraftSaleTabSerializer
    permission_classes = [CanSell]
    lookup_field = 'tab_id'
    lookup_value_regex = '[^/]+'

    def list(self, request):
        state = services.load_open_tabs()
        return Response({
            'tabs': DraftSaleTabSerializer(state['tabs'], many=True).data,
            'active_tab_id': state['active_tab_id'],
            'tab_counter': state['tab_counter'],
        })

    def destroy(self, request, tab_id=None):
        services.remove(tab_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'])
    def sync(self, request):
        serializer = DraftSyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.sync(
            serializer.validated_data['tabs'],
            known_tab_ids=serializer.validated_data.get('known_tab_ids'),
            created_by=request.user.get_username(),
        )
        return Response(result)
