import logging

from django.contrib.auth import authenticate
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated

logger = logging.getLogger(__name__)


def _error(detail: str, status_code: int):
    """Consistent error payload shape across API: {'detail': ...}."""
    return JsonResponse({'detail': detail}, status=status_code)


def _user_payload(user, token=None):
    payload = {
        'id': str(user.pk),
        'username': user.username,
        'role': user.role,
        'can_approve_quotes': user.can_approve_quotes,
    }
    if token is not None:
        payload['token'] = token.key
    return payload


@csrf_exempt
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Login endpoint that returns a token and the user's role
    """
    username = request.data.get('username')
    password = request.data.get('password')

    if not username or not password:
        return _error('Username and password required', 400)

    user = authenticate(username=username, password=password)
    if not user:
        logger.warning("Failed login for %s", username)
        return _error('Invalid credentials', 401)

    token, _ = Token.objects.get_or_create(user=user)
    return JsonResponse(_user_payload(user, token))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    """Identity of the authenticated caller, used for edit/approval checks client side."""
    return JsonResponse(_user_payload(request.user))
