import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.views import TokenRefreshView
from django.shortcuts import get_object_or_404
from django.db import transaction

from .authentication import issue_tokens
from .models import User, AuthProvider
from .permissions import (
    allow_authenticated, check_row_level_permission, ensure_authenticated, get_user_roles,
)
from .serializers import (
    UserSerializer, MeSerializer, AuthProviderSerializer,
    RegisterWithCredentialsSerializer, RegisterWithProviderSerializer,
    LoginSerializer, CustomTokenRefreshSerializer,
)
from .utils import apply_list_query

logger = logging.getLogger('backend.core')

USER_SORTABLE_FIELDS = ('id', 'name', 'created_at', 'updated_at')


def _auth_payload(user, status_code=status.HTTP_200_OK):
    access, refresh = issue_tokens(user)
    return Response({
        'user': UserSerializer(user).data,
        'token': access,
        'refresh': refresh,
    }, status=status_code)


class CustomTokenRefreshView(TokenRefreshView):
    """Token refresh view that handles deleted users gracefully"""
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register_with_credentials(request):
    """Create an email/password account and sign it in"""
    serializer = RegisterWithCredentialsSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            user = serializer.save()
        logger.info(f"Registered user {user.pk} with credentials")
        return _auth_payload(user, status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([AllowAny])
def register_with_provider(request):
    """Create an account for a user signed in through an external provider"""
    serializer = RegisterWithProviderSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            user = serializer.save()
        logger.info(f"Registered user {user.pk} with provider {user.auth_provider.type}")
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Exchange email and password for tokens"""
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    email = User.objects.normalize_email(serializer.validated_data['email'])
    user = User.objects.filter(email__iexact=email).first()
    if user is None or not user.check_password(serializer.validated_data['password']):
        logger.warning(f"Failed login for {email}")
        raise AuthenticationFailed('Invalid email or password.')
    if not user.is_active:
        raise AuthenticationFailed('User account is disabled.')

    logger.info(f"User {user.pk} logged in")
    return _auth_payload(user)


@api_view(['GET'])
@permission_classes([AllowAny])
def auth_provider_detail(request, user_id):
    """Get the auth provider record of a user"""
    provider = get_object_or_404(AuthProvider, user_id=user_id)
    return Response(AuthProviderSerializer(provider).data)


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def user_me(request):
    """Get current user with roles"""
    return Response(MeSerializer(request.user).data)


# User views
@api_view(['GET'])
@permission_classes([AllowAny])
def user_list(request):
    """List users"""
    users = apply_list_query(User.objects.all(), request.query_params, USER_SORTABLE_FIELDS)
    serializer = UserSerializer(users, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([AllowAny])
def user_count(request):
    return Response({'count': User.objects.count()})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def user_detail(request, pk):
    """Retrieve (public), update or delete (owner or admin) a user"""
    if request.method == 'GET':
        user = get_object_or_404(User, pk=pk)
        return Response(UserSerializer(user).data)

    ensure_authenticated(request)
    user = get_object_or_404(User, pk=pk)
    check_row_level_permission(request.user, user.pk)

    if request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            logger.info(f"User {user.pk} updated by {request.user.pk}")
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        logger.info(f"User {user.pk} deleted by {request.user.pk}")
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def user_roles(request, pk):
    """Roles of a user (the caller's own, or anyone's for admins)"""
    user = get_object_or_404(User, pk=pk)
    check_row_level_permission(request.user, user.pk)
    return Response({'id': user.pk, 'roles': get_user_roles(user.pk)})
