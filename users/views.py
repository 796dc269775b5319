from rest_framework import status, viewsets, generics
from rest_framework.response import Response
from rest_framework.decorators import api_view, permission_classes, action
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.exceptions import TokenError
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count
from drf_spectacular.utils import extend_schema, OpenApiParameter
from .serializers import (
    UserSerializer, UserMiniSerializer, UserUpdateSerializer, UserRegistrationSerializer,
    AdminUserSerializer, AdminUserCreateSerializer, BlockUserSerializer,
    PasswordResetRequestSerializer, PasswordResetConfirmSerializer,
)
from .utils import search_users, send_password_reset_email, get_user_from_reset_token
from cinetrack.views import BaseModelViewSet
from cinetrack.permissions import IsAdminRole, IsNotBlocked
from cinetrack.utils import create_error_response
import logging

User = get_user_model()
logger = logging.getLogger('cinetrack')


class UserViewSet(viewsets.GenericViewSet):
    """
    API viewset for the current user's profile and the user directory.
    """
    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsNotBlocked]

    def get_serializer_class(self):
        if self.action == 'me' and self.request.method in ('PUT', 'PATCH'):
            return UserUpdateSerializer
        if self.action == 'search':
            return UserMiniSerializer
        return UserSerializer

    @action(detail=False, methods=['get', 'put', 'patch'])
    def me(self, request):
        """
        Get or update the current user's profile
        """
        if request.method == 'GET':
            serializer = UserSerializer(request.user)
            return Response(serializer.data)

        serializer = UserUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            user = serializer.save()
        logger.info(f"Profile updated for user {user.pk}")
        return Response(UserSerializer(user).data)

    @extend_schema(parameters=[OpenApiParameter('q', str, description='At least two characters')])
    @action(detail=False, methods=['get'])
    def search(self, request):
        """
        Search other users by first name, last name or email
        """
        users = search_users(request.user, request.query_params.get('q'))
        serializer = UserMiniSerializer(users, many=True)
        return Response(serializer.data)


class AuthTokenObtainPairView(TokenObtainPairView):
    """
    Token obtain pair view that also returns the signed-in user's profile
    """
    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)

        if response.status_code == 200:
            email = (request.data.get('email') or '').strip()
            try:
                user = User.objects.get(email__iexact=email)
            except User.DoesNotExist:
                logger.error(f"User not found during token obtain: {email}")
                return response

            data = response.data
            data['user'] = UserSerializer(user).data
            return Response(data)

        return response


class RegistrationView(generics.CreateAPIView):
    """
    API view for user registration
    """
    queryset = User.objects.all()
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            user = serializer.save()

        refresh = RefreshToken.for_user(user)

        return Response({
            'message': 'User created successfully',
            'user': UserSerializer(user).data,
            'tokens': {
                'refresh': str(refresh),
                'access': str(refresh.access_token),
            }
        }, status=status.HTTP_201_CREATED)


class PasswordResetRequestView(generics.GenericAPIView):
    """
    API view to request a password reset link by email
    """
    serializer_class = PasswordResetRequestSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data['email']

        user = User.objects.filter(email__iexact=email, is_active=True, is_blocked=False).first()
        if user is not None:
            send_password_reset_email(user)
        else:
            # Don't reveal whether the user exists
            logger.info(f"Password reset requested for unknown email: {email}")

        return Response({
            'message': 'Password reset email sent if the email exists'
        })


class PasswordResetConfirmView(generics.GenericAPIView):
    """
    API view to confirm a password reset
    """
    serializer_class = PasswordResetConfirmSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = get_user_from_reset_token(
            serializer.validated_data['uid'],
            serializer.validated_data['token'],
        )
        if user is None:
            return create_error_response("Invalid or expired token", status.HTTP_400_BAD_REQUEST)

        user.set_password(serializer.validated_data['password'])
        user.save(update_fields=['password', 'updated_at'])
        logger.info(f"Password reset completed for user {user.pk}")

        return Response({
            'message': 'Password reset successful'
        })


@extend_schema(request=None, responses=None)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsNotBlocked])
def logout_view(request):
    """
    API view to logout a user by invalidating their refresh token
    """
    refresh_token = request.data.get('refresh')
    if not refresh_token:
        return create_error_response("Refresh token is required", status.HTTP_400_BAD_REQUEST)

    try:
        token = RefreshToken(refresh_token)
        token.blacklist()
    except TokenError as e:
        logger.warning(f"Logout with invalid refresh token: {str(e)}")
        return create_error_response(str(e), status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': 'Logout successful'
    })


class AdminUserViewSet(BaseModelViewSet):
    """
    Admin-only user management: list, create, block and unblock accounts.
    """
    permission_classes = [IsAuthenticated, IsNotBlocked, IsAdminRole]
    http_method_names = ['get', 'post', 'head', 'options']

    def get_queryset(self):
        return (
            User.objects
            .annotate(
                entries_count=Count('media_entries', distinct=True),
                friendships_count=(
                    Count('friend_requests_sent', distinct=True) +
                    Count('friend_requests_received', distinct=True)
                ),
            )
            .order_by('-date_joined')
        )

    def get_serializer_class(self):
        if self.action == 'create':
            return AdminUserCreateSerializer
        if self.action in ('block', 'unblock'):
            return BlockUserSerializer
        return AdminUserSerializer

    @action(detail=True, methods=['post'])
    def block(self, request, pk=None):
        """
        Block a user account
        """
        user = self.get_object()
        if user.pk == request.user.pk:
            return create_error_response("You cannot block your own account", status.HTTP_400_BAD_REQUEST)

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user.block(serializer.validated_data.get('reason') or None)

        return Response(AdminUserSerializer(user).data)

    @action(detail=True, methods=['post'])
    def unblock(self, request, pk=None):
        """
        Unblock a user account
        """
        user = self.get_object()
        user.unblock()

        return Response(AdminUserSerializer(user).data)
