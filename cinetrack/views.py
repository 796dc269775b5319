from rest_framework import status, viewsets
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from .permissions import IsOwner, IsNotBlocked
from django.db import connection, transaction, DatabaseError
from django.utils import timezone
from django.conf import settings
import logging

logger = logging.getLogger('cinetrack')

class BaseModelViewSet(viewsets.ModelViewSet):
    """
    Base viewset for authenticated, non-blocked users.

    Writes run inside a transaction and are logged with the acting user;
    failures are logged and re-raised for the exception handler.
    """
    permission_classes = [IsAuthenticated, IsNotBlocked]

    def get_queryset(self):
        queryset = super().get_queryset()
        logger.debug(f"Fetching {queryset.model.__name__} objects for user {self.request.user.pk}")
        return queryset

    def run_atomic(self, description, operation):
        try:
            with transaction.atomic():
                return operation()
        except Exception as e:
            logger.error(f"Error {description} for user {self.request.user.pk}: {str(e)}")
            raise

    def perform_create(self, serializer):
        instance = self.run_atomic(f"creating {serializer.Meta.model.__name__}", serializer.save)
        logger.info(f"Created {instance.__class__.__name__} {instance.pk} for user {self.request.user.pk}")

    def perform_update(self, serializer):
        instance = self.run_atomic(f"updating {serializer.Meta.model.__name__}", serializer.save)
        logger.info(f"Updated {instance.__class__.__name__} {instance.pk} for user {self.request.user.pk}")

    def perform_destroy(self, instance):
        label = f"{instance.__class__.__name__} {instance.pk}"
        self.run_atomic(f"deleting {label}", instance.delete)
        logger.info(f"Deleted {label} for user {self.request.user.pk}")


class OwnerModelViewSet(BaseModelViewSet):
    """
    Base viewset for resources that should only be visible to their owners.
    Set `owner_field` to the name of the foreign key pointing at the user.
    """
    permission_classes = [IsAuthenticated, IsNotBlocked, IsOwner]
    owner_field = 'owner'

    def get_queryset(self):
        return super().get_queryset().filter(**{self.owner_field: self.request.user})

    def perform_create(self, serializer):
        instance = self.run_atomic(
            f"creating {serializer.Meta.model.__name__}",
            lambda: serializer.save(**{self.owner_field: self.request.user}),
        )
        logger.info(f"Created {instance.__class__.__name__} {instance.pk} for user {self.request.user.pk}")


@api_view(['GET', 'HEAD'])
@permission_classes([AllowAny])
@throttle_classes([])
def health_check(request):
    """
    Report whether the application can reach its database.
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as e:
        logger.error(f"Health check failed: {str(e)}")
        if request.method == 'HEAD':
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({
            'status': 'unhealthy',
            'timestamp': timezone.now().isoformat(),
            'database': 'disconnected',
            'error': str(e) if settings.DEBUG else 'Database unavailable',
        }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if request.method == 'HEAD':
        return Response(status=status.HTTP_200_OK)
    return Response({
        'status': 'healthy',
        'timestamp': timezone.now().isoformat(),
        'database': 'connected',
        'debug': settings.DEBUG,
    })
