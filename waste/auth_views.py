"""
Session login, logout and the current-identity endpoint.

Login failures never say whether the username exists.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate, login, logout
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from waste.serializers.auth import LoginSerializer
from waste.services.audit import log_action

from .models import User
from .permissions import role_names_for

logger = logging.getLogger(__name__)


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


def serialize_user(user: User) -> dict:
    memberships = user.memberships.select_related('hospital').order_by('-is_default', 'hospital__code')
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'roles': sorted(role_names_for(user)),
        'hospitals': [
            {
                'id': m.hospital.id,
                'code': m.hospital.code,
                'name': m.hospital.name,
                'colorHex': m.hospital.color_hex,
                'isDefault': m.is_default,
            }
            for m in memberships
        ],
    }


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if user is None:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        logger.info('login failed username=%s', username)
        return Response(
            {'ok': False, 'error': {'code': 'invalid_credentials', 'message': 'Invalid username or password'}},
            status=status.HTTP_401_UNAUTHORIZED,
        )

    login(request, user)
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})
    return Response({'success': True, 'user': serialize_user(user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id)
    logout(request)
    return Response({'success': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response(serialize_user(request.user))
