#!/usr/bin/env python
"""
Script to generate sample data for CineTrack development.
Creates users, a small catalogue, collection entries and friendships.

Usage:
    python manage.py shell -c "exec(open('scripts/generate_sample_data.py').read())"
"""

import random
import traceback
from datetime import timedelta
from django.utils import timezone
from rest_framework.exceptions import APIException

from users.models import User
from friends.models import Friendship
from friends import services as friendship_services
from library.models import Media, MediaEntry

# Configuration
NUM_USERS = 10
NUM_FRIEND_REQUESTS = 15
ENTRIES_PER_USER = 5

SAMPLE_MEDIA = [
    {"external_id": "tmdb_movie_603", "title": "The Matrix", "release_year": 1999,
     "genres": ["Action", "Science Fiction"], "director": "Lana Wachowski",
     "type": Media.Type.MOVIE, "rating": 8.2, "duration": 136},
    {"external_id": "tmdb_movie_27205", "title": "Inception", "release_year": 2010,
     "genres": ["Action", "Science Fiction", "Adventure"], "director": "Christopher Nolan",
     "type": Media.Type.MOVIE, "rating": 8.4, "duration": 148},
    {"external_id": "tmdb_movie_129", "title": "Spirited Away", "release_year": 2001,
     "genres": ["Animation", "Family", "Fantasy"], "director": "Hayao Miyazaki",
     "type": Media.Type.MOVIE, "rating": 8.5, "duration": 125},
    {"external_id": "tmdb_movie_496243", "title": "Parasite", "release_year": 2019,
     "genres": ["Comedy", "Thriller", "Drama"], "director": "Bong Joon-ho",
     "type": Media.Type.MOVIE, "rating": 8.5, "duration": 133},
    {"external_id": "tmdb_tv_1399", "title": "Game of Thrones", "release_year": 2011,
     "genres": ["Drama", "Action & Adventure"], "type": Media.Type.TV_SERIES, "rating": 8.5},
    {"external_id": "tmdb_tv_1396", "title": "Breaking Bad", "release_year": 2008,
     "genres": ["Drama", "Crime"], "type": Media.Type.TV_SERIES, "rating": 8.9},
    {"external_id": "tmdb_tv_66732", "title": "Stranger Things", "release_year": 2016,
     "genres": ["Drama", "Mystery", "Sci-Fi & Fantasy"], "type": Media.Type.TV_SERIES, "rating": 8.6},
]

FIRST_NAMES = ["Anna", "Boris", "Chloe", "Dmitri", "Elena", "Farid", "Greta", "Hugo", "Irina", "Jonas"]
LAST_NAMES = ["Smith", "Ivanova", "Dubois", "Petrov", "Garcia", "Haddad", "Larsen", "Moreau", "Sokolova", "Weber"]

try:
    print("Starting sample data generation for CineTrack...")

    # Create admin user if not exists
    admin_user = User.objects.filter(email="admin@cinetrack.local").first()
    if admin_user is None:
        admin_user = User.objects.create_superuser(
            email="admin@cinetrack.local",
            password="cinetrack",
            first_name="CineTrack",
            last_name="Admin",
        )
        print("Created admin user: admin@cinetrack.local")
    else:
        print("Admin user already exists")

    # Create regular users
    print(f"Creating {NUM_USERS} sample users...")
    users = []
    for i in range(NUM_USERS):
        email = f"user{i + 1}@example.com"
        user = User.objects.filter(email=email).first()
        if user is None:
            user = User.objects.create_user(
                email=email,
                password="password123",
                first_name=FIRST_NAMES[i % len(FIRST_NAMES)],
                last_name=LAST_NAMES[i % len(LAST_NAMES)],
            )
            print(f"Created user: {email}")
        users.append(user)

    # Create catalogue
    print("Creating catalogue...")
    catalogue = []
    for data in SAMPLE_MEDIA:
        data = dict(data)
        media, created = Media.objects.get_or_create(external_id=data.pop("external_id"), defaults=data)
        catalogue.append(media)
        if created:
            print(f"Created media: {media}")

    # Fill collections
    print("Creating collection entries...")
    now = timezone.now()
    for user in users:
        for media in random.sample(catalogue, ENTRIES_PER_USER):
            entry_status = random.choice(MediaEntry.Status.values)
            MediaEntry.objects.update_or_create(
                user=user,
                media=media,
                defaults={
                    "status": entry_status,
                    "user_rating": round(random.uniform(5, 10), 1) if entry_status == MediaEntry.Status.WATCHED else None,
                    "started_at": now - timedelta(days=random.randint(10, 60)) if entry_status != MediaEntry.Status.WANT_TO_WATCH else None,
                    "watched_at": now - timedelta(days=random.randint(0, 9)) if entry_status == MediaEntry.Status.WATCHED else None,
                },
            )

    # Create friendships through the same rules the API uses
    print(f"Creating {NUM_FRIEND_REQUESTS} friend requests...")
    for _ in range(NUM_FRIEND_REQUESTS):
        requester, recipient = random.sample(users, 2)
        try:
            friendship = friendship_services.create_request(requester, recipient.pk)
        except APIException as e:
            print(f"Skipping {requester.email} -> {recipient.email}: {e.detail}")
            continue

        answer = random.choice([None] + list(Friendship.RESPONSE_STATUSES))
        if answer:
            friendship_services.transition(recipient, friendship.pk, answer)
        print(f"Friend request {requester.email} -> {recipient.email}: {answer or Friendship.Status.PENDING}")

    print("Sample data generation completed.")
except Exception as e:
    print(f"Error generating sample data: {str(e)}")
    traceback.print_exc()
