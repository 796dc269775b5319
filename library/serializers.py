from rest_framework import serializers
from django.utils import timezone
from cinetrack.serializers import BaseSerializer, TimeStampedModelSerializer
from cinetrack.validators import external_id_validator
from .models import Media, MediaEntry
import logging

logger = logging.getLogger('cinetrack')


class MediaSerializer(TimeStampedModelSerializer):
    """
    Serializer for catalogue items
    """
    class Meta:
        model = Media
        fields = [
            'id', 'external_id', 'title', 'original_title', 'description',
            'release_year', 'genres', 'director', 'poster_url', 'backdrop_url',
            'type', 'rating', 'duration', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            # Existing catalogue rows are reused, so no uniqueness check on input
            'external_id': {'validators': [external_id_validator]},
        }

    def validate_genres(self, value):
        if not isinstance(value, list) or not all(isinstance(genre, str) for genre in value):
            raise serializers.ValidationError("Genres must be a list of names.")
        return value


class MediaEntrySerializer(TimeStampedModelSerializer):
    """
    A collection entry with its catalogue item expanded
    """
    media = MediaSerializer(read_only=True)

    class Meta:
        model = MediaEntry
        fields = [
            'id', 'media', 'status', 'user_rating', 'personal_notes',
            'started_at', 'watched_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class MediaEntryCreateSerializer(serializers.Serializer):
    """
    Add a title to the current user's collection.

    The title is given either as catalogue fields under `media` (the row is
    created on first use, looked up by `external_id`) or as the `media_id`
    of an existing catalogue item. Adding a title that is already in the
    collection updates the existing entry instead.
    """
    media = MediaSerializer(required=False)
    media_id = serializers.PrimaryKeyRelatedField(
        queryset=Media.objects.all(), required=False, write_only=True
    )
    status = serializers.ChoiceField(choices=MediaEntry.Status.choices, default=MediaEntry.Status.WANT_TO_WATCH)
    user_rating = serializers.FloatField(min_value=0, max_value=10, required=False, allow_null=True)
    personal_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        if not attrs.get('media') and not attrs.get('media_id'):
            raise serializers.ValidationError({'media': "Media or media_id is required"})
        return attrs

    def create(self, validated_data):
        user = validated_data.pop('user')
        media = validated_data.pop('media_id', None)

        if media is None:
            media_data = dict(validated_data.pop('media'))
            media, media_created = Media.objects.get_or_create(
                external_id=media_data.pop('external_id'),
                defaults=media_data,
            )
            if media_created:
                logger.info(f"Catalogue item created: {media.external_id}")
        else:
            validated_data.pop('media', None)

        entry, created = MediaEntry.objects.update_or_create(
            user=user,
            media=media,
            defaults={
                'status': validated_data['status'],
                'user_rating': validated_data.get('user_rating'),
                'personal_notes': validated_data.get('personal_notes'),
            },
        )
        # Exposed to the view so it can answer 201 or 200
        self.created = created
        return entry

    def to_representation(self, instance):
        return MediaEntrySerializer(instance, context=self.context).data


class MediaEntryUpdateSerializer(BaseSerializer):
    """
    Update progress, rating and notes of an entry. Moving to WATCHED or
    WATCHING stamps `watched_at` / `started_at` unless a date is supplied.
    """
    user_rating = serializers.FloatField(min_value=0, max_value=10, required=False, allow_null=True)

    class Meta:
        model = MediaEntry
        fields = ['status', 'user_rating', 'personal_notes', 'started_at', 'watched_at']

    def update(self, instance, validated_data):
        now = timezone.now()
        new_status = validated_data.get('status')
        if new_status == MediaEntry.Status.WATCHED and not validated_data.get('watched_at'):
            validated_data['watched_at'] = now
        if new_status == MediaEntry.Status.WATCHING and not validated_data.get('started_at'):
            validated_data['started_at'] = now

        return super().update(instance, validated_data)

    def to_representation(self, instance):
        return MediaEntrySerializer(instance, context=self.context).data
