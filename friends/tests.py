from unittest.mock import patch

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.urls import reverse
from rest_framework.test import APIClient, APITestCase
from rest_framework import status
from rest_framework.exceptions import ValidationError
from users.models import User
from .models import Friendship
from . import services


class FriendshipTests(APITestCase):
    def setUp(self):
        """Set up test data"""
        self.alice = User.objects.create_user(
            email='alice_friends@example.com',
            password='password123',
            first_name='Alice',
            last_name='Anderson',
        )
        self.bob = User.objects.create_user(
            email='bob_friends@example.com',
            password='password123',
            first_name='Bob',
            last_name='Brown',
        )
        self.carol = User.objects.create_user(
            email='carol_friends@example.com',
            password='password123',
            first_name='Carol',
            last_name='Clark',
        )
        self.blocked_user = User.objects.create_user(
            email='blocked_friends@example.com',
            password='password123',
            first_name='Blocked',
            last_name='User',
        )
        self.blocked_user.block('spam')

        self.client = APIClient()
        self.client.force_authenticate(user=self.alice)

        self.list_url = reverse('friends:friends-list')

    def detail_url(self, friendship_id):
        return reverse('friends:friends-detail', args=[friendship_id])

    def send_request(self, sender, recipient):
        return Friendship.objects.create(requester=sender, recipient=recipient)

    def test_send_friend_request(self):
        """Sending a request creates a pending friendship with the sender as requester"""
        response = self.client.post(self.list_url, {'friend_id': self.bob.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Friendship.Status.PENDING)
        self.assertEqual(response.data['requester']['id'], self.alice.id)
        self.assertEqual(response.data['recipient']['id'], self.bob.id)

        friendship = Friendship.objects.get(pk=response.data['id'])
        self.assertEqual(friendship.requester, self.alice)
        self.assertEqual(friendship.recipient, self.bob)

    def test_send_friend_request_with_target_id_alias(self):
        response = self.client.post(self.list_url, {'target_id': str(self.bob.id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Friendship.objects.filter(requester=self.alice, recipient=self.bob).exists())

    def test_friend_id_is_required(self):
        response = self.client.post(self.list_url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Friend ID is required')

    def test_friend_id_must_be_a_user_id(self):
        response = self.client.post(self.list_url, {'friend_id': 'not-a-number'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Friendship.objects.count(), 0)

    def test_cannot_send_request_to_self(self):
        """A user cannot send a friend request to themselves"""
        response = self.client.post(self.list_url, {'friend_id': self.alice.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot add yourself as friend')
        self.assertEqual(Friendship.objects.count(), 0)

    def test_cannot_send_request_to_missing_user(self):
        response = self.client.post(self.list_url, {'friend_id': 999999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'User not found')

    def test_cannot_send_request_to_blocked_user(self):
        response = self.client.post(self.list_url, {'friend_id': self.blocked_user.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User is blocked')
        self.assertEqual(Friendship.objects.count(), 0)

    def test_cannot_send_duplicate_request(self):
        """A second request for the same pair fails whatever the direction"""
        self.send_request(self.alice, self.bob)

        response = self.client.post(self.list_url, {'friend_id': self.bob.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Friendship already exists')

        self.client.force_authenticate(user=self.bob)
        response = self.client.post(self.list_url, {'friend_id': self.alice.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Friendship already exists')

        self.assertEqual(Friendship.objects.count(), 1)

    def test_conflict_after_accepted_friendship(self):
        self.send_request(self.bob, self.alice)
        Friendship.objects.update(status=Friendship.Status.ACCEPTED)

        response = self.client.post(self.list_url, {'friend_id': self.bob.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Friendship already exists')

    def test_decline_then_request_again(self):
        """A declined request still blocks new requests until someone deletes it"""
        response = self.client.post(self.list_url, {'friend_id': self.bob.id}, format='json')
        friendship_id = response.data['id']

        self.client.force_authenticate(user=self.bob)
        response = self.client.put(self.detail_url(friendship_id), {'status': 'DECLINED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Friendship.Status.DECLINED)

        self.client.force_authenticate(user=self.alice)
        response = self.client.post(self.list_url, {'friend_id': self.bob.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Friendship already exists')

        response = self.client.delete(self.detail_url(friendship_id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(self.list_url, {'friend_id': self.bob.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_recipient_accepts_request(self):
        friendship = self.send_request(self.alice, self.bob)

        self.client.force_authenticate(user=self.bob)
        response = self.client.put(self.detail_url(friendship.id), {'status': 'ACCEPTED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Friendship.Status.ACCEPTED)
        self.assertEqual(response.data['requester']['id'], self.alice.id)
        self.assertEqual(response.data['recipient']['id'], self.bob.id)

        friendship.refresh_from_db()
        self.assertEqual(friendship.status, Friendship.Status.ACCEPTED)
        self.assertGreaterEqual(friendship.updated_at, friendship.created_at)

    def test_recipient_blocks_request(self):
        friendship = self.send_request(self.alice, self.bob)

        self.client.force_authenticate(user=self.bob)
        response = self.client.put(self.detail_url(friendship.id), {'status': 'BLOCKED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Friendship.Status.BLOCKED)

    def test_requester_cannot_change_status(self):
        """The user who sent the request cannot answer it"""
        friendship = self.send_request(self.alice, self.bob)

        response = self.client.put(self.detail_url(friendship.id), {'status': 'ACCEPTED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Only recipient can change friendship status')

        friendship.refresh_from_db()
        self.assertEqual(friendship.status, Friendship.Status.PENDING)

    def test_non_party_cannot_change_status(self):
        friendship = self.send_request(self.alice, self.bob)

        self.client.force_authenticate(user=self.carol)
        response = self.client.put(self.detail_url(friendship.id), {'status': 'ACCEPTED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Access denied')

    def test_invalid_status_is_rejected(self):
        friendship = self.send_request(self.alice, self.bob)

        self.client.force_authenticate(user=self.bob)
        for value in ('PENDING', 'accepted', 'FRIENDS'):
            response = self.client.put(self.detail_url(friendship.id), {'status': value}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data['error'], 'Valid status is required')

    def test_processed_request_cannot_change_again(self):
        friendship = self.send_request(self.alice, self.bob)
        friendship.status = Friendship.Status.DECLINED
        friendship.save()

        self.client.force_authenticate(user=self.bob)
        response = self.client.put(self.detail_url(friendship.id), {'status': 'ACCEPTED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'This friend request has already been processed')

        friendship.refresh_from_db()
        self.assertEqual(friendship.status, Friendship.Status.DECLINED)

    def test_transition_missing_friendship(self):
        response = self.client.put(self.detail_url(999999), {'status': 'ACCEPTED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Friendship not found')

    def test_patch_is_not_allowed(self):
        friendship = self.send_request(self.alice, self.bob)
        response = self.client.patch(self.detail_url(friendship.id), {'status': 'ACCEPTED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_either_party_can_delete(self):
        """Requester and recipient may both delete, whatever the status"""
        pending = self.send_request(self.alice, self.bob)
        response = self.client.delete(self.detail_url(pending.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'success': True})
        self.assertFalse(Friendship.objects.filter(pk=pending.id).exists())

        accepted = Friendship.objects.create(
            requester=self.alice, recipient=self.bob, status=Friendship.Status.ACCEPTED
        )
        self.client.force_authenticate(user=self.bob)
        response = self.client.delete(self.detail_url(accepted.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Friendship.objects.filter(pk=accepted.id).exists())

        # Gone from both lists
        response = self.client.get(self.list_url)
        self.assertEqual(response.data, [])
        self.client.force_authenticate(user=self.alice)
        response = self.client.get(self.list_url)
        self.assertEqual(response.data, [])

    def test_non_party_cannot_delete(self):
        friendship = self.send_request(self.alice, self.bob)

        self.client.force_authenticate(user=self.carol)
        response = self.client.delete(self.detail_url(friendship.id))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Friendship.objects.filter(pk=friendship.id).exists())

    def test_delete_missing_friendship(self):
        response = self.client.delete(self.detail_url(999999))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_shows_other_user_to_each_party(self):
        """After acceptance both users see one record pointing at the other"""
        friendship = self.send_request(self.alice, self.bob)
        services.transition(self.bob, friendship.id, Friendship.Status.ACCEPTED)

        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['status'], Friendship.Status.ACCEPTED)
        self.assertTrue(response.data[0]['is_actor_initiator'])
        self.assertEqual(response.data[0]['other_user']['id'], self.bob.id)
        self.assertEqual(response.data[0]['other_user']['email'], self.bob.email)

        self.client.force_authenticate(user=self.bob)
        response = self.client.get(self.list_url)
        self.assertEqual(len(response.data), 1)
        self.assertFalse(response.data[0]['is_actor_initiator'])
        self.assertEqual(response.data[0]['other_user']['id'], self.alice.id)

    def test_list_only_contains_own_friendships(self):
        self.send_request(self.alice, self.bob)
        self.send_request(self.carol, self.alice)
        self.send_request(self.bob, self.carol)

        response = self.client.get(self.list_url)
        self.assertEqual(len(response.data), 2)
        other_ids = {item['other_user']['id'] for item in response.data}
        self.assertEqual(other_ids, {self.bob.id, self.carol.id})

    def test_list_is_ordered_by_most_recent_change(self):
        first = self.send_request(self.alice, self.bob)
        second = self.send_request(self.carol, self.alice)

        # Answering the older request moves it to the top
        services.transition(self.bob, first.id, Friendship.Status.ACCEPTED)

        response = self.client.get(self.list_url)
        self.assertEqual([item['id'] for item in response.data], [first.id, second.id])

    def test_retrieve_friendship(self):
        friendship = self.send_request(self.alice, self.bob)

        response = self.client.get(self.detail_url(friendship.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['recipient']['id'], self.bob.id)

        self.client.force_authenticate(user=self.carol)
        response = self.client.get(self.detail_url(friendship.id))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_access(self):
        """Test that unauthenticated users cannot access friendship endpoints"""
        client = APIClient()
        response = client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        response = client.post(self.list_url, {'friend_id': self.bob.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_blocked_user_cannot_use_friends_api(self):
        self.client.force_authenticate(user=self.blocked_user)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Your account has been blocked.')


class FriendshipStorageTests(APITestCase):
    """Invariants enforced by the database itself."""

    def setUp(self):
        self.alice = User.objects.create_user(
            email='alice_storage@example.com', password='password123',
            first_name='Alice', last_name='Storage',
        )
        self.bob = User.objects.create_user(
            email='bob_storage@example.com', password='password123',
            first_name='Bob', last_name='Storage',
        )

    def test_reverse_pair_violates_unique_constraint(self):
        Friendship.objects.create(requester=self.alice, recipient=self.bob)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Friendship.objects.create(requester=self.bob, recipient=self.alice)

        self.assertEqual(Friendship.objects.count(), 1)

    def test_self_friendship_violates_check_constraint(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Friendship.objects.create(requester=self.alice, recipient=self.alice)

    def test_concurrent_request_becomes_conflict(self):
        """
        When the other user's request lands between the existence check and
        the insert, the constraint rejects the second row.
        """
        Friendship.objects.create(requester=self.bob, recipient=self.alice)

        # Make the pre-insert check miss the existing row
        with patch.object(services, '_pair_filter', return_value=Q(pk__in=[])):
            with self.assertRaises(services.FriendshipConflict):
                services.create_request(self.alice, self.bob.pk)

        self.assertEqual(Friendship.objects.count(), 1)
        self.assertEqual(Friendship.objects.get().requester, self.bob)

    def test_concurrent_answer_is_rejected(self):
        """
        A second answer that read the request while it was still pending
        must not overwrite the first one.
        """
        friendship = Friendship.objects.create(requester=self.alice, recipient=self.bob)
        stale = Friendship.objects.get(pk=friendship.pk)

        services.transition(self.bob, friendship.pk, Friendship.Status.ACCEPTED)

        with patch.object(services, 'get_friendship_for_actor', return_value=stale):
            with self.assertRaises(ValidationError) as ctx:
                services.transition(self.bob, friendship.pk, Friendship.Status.BLOCKED)

        self.assertEqual(ctx.exception.detail['status'][0], 'This friend request has already been processed')
        friendship.refresh_from_db()
        self.assertEqual(friendship.status, Friendship.Status.ACCEPTED)

    def test_transition_stamps_updated_at(self):
        friendship = Friendship.objects.create(requester=self.alice, recipient=self.bob)
        before = friendship.updated_at

        answered = services.transition(self.bob, friendship.pk, Friendship.Status.DECLINED)

        friendship.refresh_from_db()
        self.assertEqual(friendship.status, Friendship.Status.DECLINED)
        self.assertGreaterEqual(friendship.updated_at, before)
        self.assertEqual(answered.updated_at, friendship.updated_at)

    def test_other_party(self):
        friendship = Friendship.objects.create(requester=self.alice, recipient=self.bob)
        self.assertEqual(friendship.other_party(self.alice), self.bob)
        self.assertEqual(friendship.other_party(self.bob), self.alice)
        self.assertTrue(friendship.involves(self.bob))
