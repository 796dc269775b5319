from datetime import timedelta
from unittest.mock import patch

from django.db import DatabaseError
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient, APITestCase
from rest_framework import status
from users.models import User
from cinetrack.utils import format_count
from .models import Media, MediaEntry

MATRIX = {
    'external_id': 'tmdb_movie_603',
    'title': 'The Matrix',
    'original_title': 'The Matrix',
    'release_year': 1999,
    'genres': ['Action', 'Science Fiction'],
    'director': 'Lana Wachowski',
    'type': 'MOVIE',
    'rating': 8.2,
    'duration': 136,
}


class MediaEntryTests(APITestCase):
    def setUp(self):
        """Set up test data"""
        self.user = User.objects.create_user(
            email='viewer@example.com', password='password123',
            first_name='Vera', last_name='Viewer',
        )
        self.other_user = User.objects.create_user(
            email='other_viewer@example.com', password='password123',
            first_name='Otto', last_name='Other',
        )
        self.series = Media.objects.create(
            external_id='tmdb_tv_1399', title='Game of Thrones',
            type=Media.Type.TV_SERIES, duration=60,
        )

        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

        self.list_url = reverse('library:entries-list')

    def detail_url(self, entry_id):
        return reverse('library:entries-detail', args=[entry_id])

    def test_add_media_creates_catalogue_item_and_entry(self):
        response = self.client.post(self.list_url, {'media': MATRIX}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], MediaEntry.Status.WANT_TO_WATCH)
        self.assertEqual(response.data['media']['external_id'], 'tmdb_movie_603')
        self.assertEqual(response.data['media']['genres'], ['Action', 'Science Fiction'])

        self.assertEqual(Media.objects.filter(external_id='tmdb_movie_603').count(), 1)
        self.assertTrue(MediaEntry.objects.filter(user=self.user, media__external_id='tmdb_movie_603').exists())

    def test_add_existing_media_by_id(self):
        response = self.client.post(
            self.list_url,
            {'media_id': self.series.id, 'status': 'WATCHING', 'user_rating': 9},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['media']['id'], self.series.id)
        self.assertEqual(response.data['user_rating'], 9)

    def test_catalogue_item_is_shared_between_users(self):
        self.client.post(self.list_url, {'media': MATRIX}, format='json')

        self.client.force_authenticate(user=self.other_user)
        response = self.client.post(self.list_url, {'media': dict(MATRIX, title='Matrix')}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        self.assertEqual(Media.objects.filter(external_id='tmdb_movie_603').count(), 1)
        # The first version of the catalogue row is kept
        self.assertEqual(response.data['media']['title'], 'The Matrix')

    def test_adding_twice_updates_entry(self):
        self.client.post(self.list_url, {'media': MATRIX}, format='json')
        response = self.client.post(
            self.list_url,
            {'media': MATRIX, 'status': 'WATCHED', 'user_rating': 8.5, 'personal_notes': 'Red pill'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], MediaEntry.Status.WATCHED)
        self.assertEqual(response.data['personal_notes'], 'Red pill')
        self.assertEqual(MediaEntry.objects.filter(user=self.user).count(), 1)

    def test_add_requires_media(self):
        response = self.client.post(self.list_url, {'status': 'WATCHED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Media or media_id is required')

    def test_add_validates_fields(self):
        response = self.client.post(
            self.list_url, {'media': MATRIX, 'user_rating': 11}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            self.list_url, {'media': MATRIX, 'status': 'FINISHED'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            self.list_url, {'media': dict(MATRIX, external_id='Not An Id')}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Media.objects.filter(title='The Matrix').exists())

    def test_list_is_paginated(self):
        for i in range(5):
            media = Media.objects.create(external_id=f'tmdb_movie_{i}', title=f'Movie {i}', type=Media.Type.MOVIE)
            MediaEntry.objects.create(user=self.user, media=media)

        response = self.client.get(self.list_url, {'limit': 2, 'page': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['entries']), 2)
        self.assertEqual(response.data['pagination'], {
            'page': 2,
            'limit': 2,
            'total': 5,
            'total_pages': 3,
        })

    def test_list_defaults(self):
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['entries'], [])
        self.assertEqual(response.data['pagination']['page'], 1)
        self.assertEqual(response.data['pagination']['limit'], 20)
        self.assertEqual(response.data['pagination']['total'], 0)
        self.assertEqual(response.data['pagination']['total_pages'], 0)

    def test_list_filters_by_status_and_type(self):
        movie = Media.objects.create(**MATRIX)
        watched = MediaEntry.objects.create(user=self.user, media=movie, status=MediaEntry.Status.WATCHED)
        watching = MediaEntry.objects.create(user=self.user, media=self.series, status=MediaEntry.Status.WATCHING)

        response = self.client.get(self.list_url, {'status': 'WATCHED'})
        self.assertEqual([e['id'] for e in response.data['entries']], [watched.id])

        response = self.client.get(self.list_url, {'type': 'tv_series'})
        self.assertEqual([e['id'] for e in response.data['entries']], [watching.id])

        response = self.client.get(self.list_url, {'type': 'podcast'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_only_shows_own_entries_newest_first(self):
        movie = Media.objects.create(**MATRIX)
        older = MediaEntry.objects.create(user=self.user, media=movie)
        newer = MediaEntry.objects.create(user=self.user, media=self.series)
        MediaEntry.objects.create(user=self.other_user, media=movie)

        response = self.client.get(self.list_url)
        self.assertEqual([e['id'] for e in response.data['entries']], [newer.id, older.id])

    def test_update_to_watched_sets_watched_at(self):
        entry = MediaEntry.objects.create(user=self.user, media=self.series)

        response = self.client.patch(self.detail_url(entry.id), {'status': 'WATCHED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], MediaEntry.Status.WATCHED)
        self.assertIsNotNone(response.data['watched_at'])

        entry.refresh_from_db()
        self.assertIsNotNone(entry.watched_at)
        self.assertIsNone(entry.started_at)

    def test_update_to_watching_sets_started_at(self):
        entry = MediaEntry.objects.create(user=self.user, media=self.series)

        response = self.client.put(
            self.detail_url(entry.id), {'status': 'WATCHING', 'user_rating': 7}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        entry.refresh_from_db()
        self.assertIsNotNone(entry.started_at)
        self.assertEqual(entry.user_rating, 7)

    def test_update_keeps_given_dates(self):
        entry = MediaEntry.objects.create(user=self.user, media=self.series)
        watched_at = timezone.now() - timedelta(days=3)

        response = self.client.patch(
            self.detail_url(entry.id),
            {'status': 'WATCHED', 'watched_at': watched_at.isoformat()},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        entry.refresh_from_db()
        self.assertEqual(entry.watched_at, watched_at)

    def test_cannot_touch_other_users_entry(self):
        entry = MediaEntry.objects.create(user=self.other_user, media=self.series)

        response = self.client.patch(self.detail_url(entry.id), {'status': 'WATCHED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Entry not found')

        response = self.client.delete(self.detail_url(entry.id))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(MediaEntry.objects.filter(pk=entry.id).exists())

    def test_delete_entry(self):
        entry = MediaEntry.objects.create(user=self.user, media=self.series)

        response = self.client.delete(self.detail_url(entry.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'success': True})
        self.assertFalse(MediaEntry.objects.filter(pk=entry.id).exists())
        # Catalogue item stays
        self.assertTrue(Media.objects.filter(pk=self.series.id).exists())

    def test_unauthenticated_access(self):
        response = APIClient().get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class StatsTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.stats_url = reverse('stats')

        self.user = User.objects.create_user(
            email='stats@example.com', password='password123',
            first_name='Stat', last_name='User',
        )
        blocked = User.objects.create_user(
            email='stats_blocked@example.com', password='password123',
            first_name='Blocked', last_name='User',
        )
        blocked.block()

        movie = Media.objects.create(**MATRIX)
        long_movie = Media.objects.create(
            external_id='tmdb_movie_1', title='Long Movie', type=Media.Type.MOVIE, duration=164,
        )
        series = Media.objects.create(external_id='tmdb_tv_1', title='Series', type=Media.Type.TV_SERIES)

        MediaEntry.objects.create(user=self.user, media=movie, status=MediaEntry.Status.WATCHED, user_rating=9)
        MediaEntry.objects.create(user=self.user, media=long_movie, status=MediaEntry.Status.WATCHED)
        MediaEntry.objects.create(user=self.user, media=series, status=MediaEntry.Status.WATCHED)
        MediaEntry.objects.create(user=blocked, media=long_movie, status=MediaEntry.Status.WATCHING)

    def test_stats_are_public(self):
        response = self.client.get(self.stats_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['raw_data'], {
            'movies': 2,
            'tv_series': 1,
            'users': 1,
            'reviews': 1,
            # (136 + 164) minutes of watched movies
            'hours': 5,
            'media_entries': 4,
        })
        self.assertEqual(response.data['movies'], '2')
        self.assertEqual(response.data['hours'], '5')

    def test_stats_without_detailed_flag_has_no_detail_block(self):
        response = self.client.get(self.stats_url)
        self.assertNotIn('detailed', response.data)

    def test_detailed_stats(self):
        Media.objects.create(
            external_id='tmdb_movie_2', title='Action Again', type=Media.Type.MOVIE,
            genres=['Action', 'Action'],
        )
        MediaEntry.objects.filter(media__title='Long Movie', user=self.user).update(user_rating=6)
        MediaEntry.objects.filter(media__type=Media.Type.TV_SERIES).update(
            created_at=timezone.now() - timedelta(days=30),
        )

        response = self.client.get(self.stats_url, {'detailed': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        detailed = response.data['detailed']
        self.assertEqual(detailed['movie_count'], 3)
        self.assertEqual(detailed['tv_series_count'], 1)
        self.assertEqual(detailed['total_media_items'], 4)
        self.assertEqual(detailed['active_users'], 1)
        self.assertEqual(detailed['total_reviews'], 2)
        self.assertEqual(detailed['watched_items'], 3)
        self.assertEqual(detailed['average_rating'], 7.5)
        self.assertEqual(detailed['total_watch_hours'], 5)
        self.assertEqual(detailed['recent_activity_week'], 3)
        # Genres repeated on one title count once
        self.assertEqual(detailed['top_genres'], [
            {'genre': 'Action', 'count': 2},
            {'genre': 'Science Fiction', 'count': 1},
        ])

    def test_detailed_stats_without_ratings(self):
        MediaEntry.objects.update(user_rating=None)
        response = self.client.get(self.stats_url, {'detailed': 'true'})
        self.assertIsNone(response.data['detailed']['average_rating'])

    def test_stats_fall_back_on_database_error(self):
        with patch('library.views.collect_stats', side_effect=DatabaseError('down')):
            response = self.client.get(self.stats_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['movies'], '10k')
        self.assertEqual(response.data['raw_data']['hours'], 50000)

    def test_format_count(self):
        self.assertEqual(format_count(0), '0')
        self.assertEqual(format_count(999), '999')
        self.assertEqual(format_count(1000), '1k')
        self.assertEqual(format_count(12500), '12k+')
        self.assertEqual(format_count(3000000), '3M')
        self.assertEqual(format_count(1250000), '1M+')
        self.assertEqual(format_count(None), '0')


class HealthCheckTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.health_url = reverse('health')

    def test_healthy(self):
        response = self.client.get(self.health_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')
        self.assertEqual(response.data['database'], 'connected')

    def test_head(self):
        response = self.client.head(self.health_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_unhealthy(self):
        with patch('cinetrack.views.connection') as mock_connection:
            mock_connection.cursor.side_effect = DatabaseError('connection refused')
            response = self.client.get(self.health_url)
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['status'], 'unhealthy')
