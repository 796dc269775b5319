from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from cinetrack.models import TimeStampedModel, ValidationModelMixin
from cinetrack.validators import external_id_validator


class Media(TimeStampedModel, ValidationModelMixin):
    """
    A movie or TV series in the shared catalogue.

    Rows are keyed by `external_id` (e.g. "tmdb_movie_603") so the same title
    added by several users maps to a single catalogue entry.
    """
    class Type(models.TextChoices):
        MOVIE = 'MOVIE', 'Movie'
        TV_SERIES = 'TV_SERIES', 'TV series'

    external_id = models.CharField(max_length=100, unique=True, validators=[external_id_validator])
    title = models.CharField(max_length=255)
    original_title = models.CharField(max_length=255, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    release_year = models.PositiveIntegerField(blank=True, null=True)
    genres = models.JSONField(default=list, blank=True)
    director = models.CharField(max_length=255, blank=True, null=True)
    poster_url = models.URLField(max_length=500, blank=True, null=True)
    backdrop_url = models.URLField(max_length=500, blank=True, null=True)
    type = models.CharField(max_length=10, choices=Type.choices)
    rating = models.FloatField(
        blank=True, null=True,
        validators=[MinValueValidator(0), MaxValueValidator(10)]
    )
    duration = models.PositiveIntegerField(blank=True, null=True, help_text="Runtime in minutes")

    class Meta:
        ordering = ['title']
        verbose_name_plural = 'Media'
        indexes = [
            models.Index(fields=['type'], name='library_media_type_idx'),
        ]

    def __str__(self):
        if self.release_year:
            return f"{self.title} ({self.release_year})"
        return self.title


class MediaEntry(TimeStampedModel):
    """
    A catalogue item in one user's collection, with their progress and rating.
    """
    class Status(models.TextChoices):
        WANT_TO_WATCH = 'WANT_TO_WATCH', 'Want to watch'
        WATCHING = 'WATCHING', 'Watching'
        WATCHED = 'WATCHED', 'Watched'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='media_entries'
    )
    media = models.ForeignKey(Media, on_delete=models.CASCADE, related_name='entries')
    status = models.CharField(max_length=15, choices=Status.choices, default=Status.WANT_TO_WATCH)
    user_rating = models.FloatField(
        blank=True, null=True,
        validators=[MinValueValidator(0), MaxValueValidator(10)]
    )
    personal_notes = models.TextField(blank=True, null=True)
    started_at = models.DateTimeField(blank=True, null=True)
    watched_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['-updated_at']
        verbose_name_plural = 'Media entries'
        constraints = [
            models.UniqueConstraint(fields=['user', 'media'], name='media_entry_unique_user_media'),
        ]
        indexes = [
            models.Index(fields=['user', 'status'], name='library_entry_status_idx'),
        ]

    def __str__(self):
        return f"{self.user.email}: {self.media.title} ({self.status})"
