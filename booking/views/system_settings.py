from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from booking.permissions import IsAdminRole
from booking.serializers.settings import SystemSettingsSerializer
from booking.services.system_settings import get_settings, reset_settings, update_settings


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def system_settings(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': get_settings()})
    if not IsAdminRole().has_permission(request, None):
        return Response({'ok': False, 'error': {'code': 'permission_denied',
                                                'message': 'Only administrators can change settings.'}}, status=403)
    s = SystemSettingsSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    return Response({'ok': True, 'data': update_settings(s.validated_data, request.user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def system_settings_reset(request):
    return Response({'ok': True, 'data': reset_settings(request.user)})
