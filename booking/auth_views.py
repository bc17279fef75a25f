"""
Authentication endpoints.

Login issues both a DRF token and a JWT pair; refresh and logout work
on the JWT refresh token.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from booking.serializers.auth import LoginSerializer
from booking.services.audit import CATEGORY_AUTH, safe_log_action

logger = logging.getLogger(__name__)


def _ip(request):
    return request.META.get('REMOTE_ADDR')


def user_payload(user) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'name': user.display_name,
        'email': user.email,
        'role': user.role,
        'countries': user.countries,
        'departments': user.departments,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        safe_log_action(user=None, action='Login Failed', category=CATEGORY_AUTH, target=username,
                        status='error', ip=_ip(request))
        logger.info("Failed login", extra={'username': username})
        return Response({'ok': False, 'error': {'code': 'invalid_credentials',
                                                'message': 'Invalid username or password.'}}, status=400)

    safe_log_action(user=user, action='Login', category=CATEGORY_AUTH, target=user.username, ip=_ip(request))
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'user': user_payload(user),
    })

login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': user_payload(request.user)})


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Exchange a refresh token for a new access token."""
    resp = TokenRefreshView.as_view()(request._request)
    data = dict(resp.data)
    if 'access' in data:
        data['jwt_access'] = data.pop('access')
    return Response(data, status=resp.status_code)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one for the user."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError:
            return Response({'ok': False, 'error': {'code': 'invalid_token', 'message': 'Invalid refresh token.'}},
                            status=400)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    safe_log_action(user=request.user, action='Logout', category=CATEGORY_AUTH, target=request.user.username,
                    ip=_ip(request))
    return Response({'ok': True, 'blacklisted': count})
