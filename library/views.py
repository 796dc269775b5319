from collections import Counter
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.db.models import Avg, Sum
from django.utils import timezone
from django.http import Http404
from drf_spectacular.utils import extend_schema, OpenApiParameter
from .models import Media, MediaEntry
from .pagination import LibraryPagination
from .serializers import MediaEntrySerializer, MediaEntryCreateSerializer, MediaEntryUpdateSerializer
from cinetrack.views import OwnerModelViewSet
from cinetrack.utils import format_count
import logging

logger = logging.getLogger('cinetrack')
User = get_user_model()


class MediaEntryViewSet(OwnerModelViewSet):
    """
    API viewset for the current user's media collection.
    """
    queryset = MediaEntry.objects.select_related('media')
    serializer_class = MediaEntrySerializer
    pagination_class = LibraryPagination
    owner_field = 'user'

    def get_queryset(self):
        queryset = super().get_queryset()

        if self.action != 'list':
            return queryset

        entry_status = self.request.query_params.get('status')
        if entry_status:
            if entry_status not in MediaEntry.Status.values:
                raise ValidationError({'status': [f"Unknown status: {entry_status}"]})
            queryset = queryset.filter(status=entry_status)

        media_type = self.request.query_params.get('type')
        if media_type:
            media_type = media_type.upper()
            if media_type not in Media.Type.values:
                raise ValidationError({'type': [f"Unknown media type: {media_type}"]})
            queryset = queryset.filter(media__type=media_type)

        return queryset.order_by('-updated_at')

    def get_serializer_class(self):
        if self.action == 'create':
            return MediaEntryCreateSerializer
        if self.action in ('update', 'partial_update'):
            return MediaEntryUpdateSerializer
        return MediaEntrySerializer

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            raise NotFound('Entry not found')

    @extend_schema(parameters=[
        OpenApiParameter('status', str, enum=MediaEntry.Status.values),
        OpenApiParameter('type', str, enum=Media.Type.values),
        OpenApiParameter('page', int),
        OpenApiParameter('limit', int),
    ])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=MediaEntryCreateSerializer, responses={201: MediaEntrySerializer, 200: MediaEntrySerializer})
    def create(self, request, *args, **kwargs):
        """
        Add a title to the collection, or update it if it is already there
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            entry = serializer.save(user=request.user)

        if serializer.created:
            logger.info(f"Media entry {entry.pk} added for {request.user}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)

        logger.info(f"Media entry {entry.pk} updated for {request.user}")
        return Response(serializer.data, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        entry = self.get_object()
        self.perform_destroy(entry)
        return Response({'success': True}, status=status.HTTP_200_OK)


DEFAULT_STATS = {
    'movies': 10000,
    'tv_series': 5000,
    'users': 3000,
    'reviews': 15000,
    'hours': 50000,
    'media_entries': 0,
}


def collect_stats():
    """Raw counters for the public stats endpoint."""
    watched_minutes = (
        MediaEntry.objects
        .filter(status=MediaEntry.Status.WATCHED, media__duration__isnull=False)
        .aggregate(total=Sum('media__duration'))['total']
    ) or 0

    return {
        'movies': Media.objects.filter(type=Media.Type.MOVIE).count(),
        'tv_series': Media.objects.filter(type=Media.Type.TV_SERIES).count(),
        'users': User.objects.filter(is_blocked=False).count(),
        'reviews': MediaEntry.objects.filter(user_rating__isnull=False).count(),
        # Rounded to the nearest hour, halves up
        'hours': (watched_minutes + 30) // 60,
        'media_entries': MediaEntry.objects.count(),
    }


TOP_GENRES_LIMIT = 5
RECENT_ACTIVITY_DAYS = 7


def collect_detailed_stats(raw):
    """
    Extra figures behind `?detailed=true`: rating average, watched count,
    most common genres and entries added during the last week.
    """
    average = (
        MediaEntry.objects
        .filter(user_rating__isnull=False)
        .aggregate(avg=Avg('user_rating'))['avg']
    )

    genres = Counter()
    for media_genres in Media.objects.exclude(genres=[]).values_list('genres', flat=True):
        genres.update(list(dict.fromkeys(media_genres or [])))

    week_ago = timezone.now() - timedelta(days=RECENT_ACTIVITY_DAYS)

    return {
        'movie_count': raw['movies'],
        'tv_series_count': raw['tv_series'],
        'total_media_items': raw['movies'] + raw['tv_series'],
        'active_users': raw['users'],
        'total_reviews': raw['reviews'],
        'watched_items': MediaEntry.objects.filter(status=MediaEntry.Status.WATCHED).count(),
        'average_rating': round(average, 1) if average is not None else None,
        'total_watch_hours': raw['hours'],
        'recent_activity_week': MediaEntry.objects.filter(created_at__gte=week_ago).count(),
        'top_genres': [
            {'genre': genre, 'count': count}
            for genre, count in genres.most_common(TOP_GENRES_LIMIT)
        ],
    }


@extend_schema(
    parameters=[OpenApiParameter('detailed', bool, description='Include the detailed block')],
    responses=None,
)
@api_view(['GET'])
@permission_classes([AllowAny])
def stats_view(request):
    """
    Public catalogue and community counters for the landing page.
    Falls back to fixed numbers when the database cannot be read.
    """
    detailed = request.query_params.get('detailed') == 'true'
    extra = {}

    try:
        raw = collect_stats()
        if detailed:
            extra['detailed'] = collect_detailed_stats(raw)
    except DatabaseError as e:
        logger.error(f"Error fetching stats: {str(e)}")
        raw = dict(DEFAULT_STATS)

    return Response({
        **extra,
        'movies': format_count(raw['movies']),
        'tv_series': format_count(raw['tv_series']),
        'users': format_count(raw['users']),
        'reviews': format_count(raw['reviews']),
        'hours': format_count(raw['hours']),
        'raw_data': raw,
    })
