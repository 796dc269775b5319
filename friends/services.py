"""
Friendship operations.

Every function receives the acting user explicitly and raises DRF
exceptions, which the project exception handler turns into JSON errors.
All checks run before any write; each write is a single atomic statement.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework import exceptions, status

from .models import Friendship

logger = logging.getLogger('cinetrack')
User = get_user_model()


class FriendshipConflict(exceptions.APIException):
    """A friendship record already exists between the two users."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Friendship already exists'
    default_code = 'conflict'


def _pair_filter(user_a_id, user_b_id):
    return (
        Q(requester_id=user_a_id, recipient_id=user_b_id) |
        Q(requester_id=user_b_id, recipient_id=user_a_id)
    )


def _parse_id(value, field_name):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise exceptions.ValidationError({field_name: ['Friend ID is required']})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise exceptions.ValidationError({field_name: ['Friend ID must be a valid user id']})


def friendships_for(actor):
    """All friendships the actor takes part in, most recently changed first."""
    return (
        Friendship.objects
        .filter(Q(requester=actor) | Q(recipient=actor))
        .select_related('requester', 'recipient')
        .order_by('-updated_at')
    )


def get_friendship_for_actor(actor, friendship_id):
    """
    Fetch a friendship the actor is a party to.

    Raises NotFound when the record does not exist and PermissionDenied when
    the actor is not one of its two participants.
    """
    try:
        friendship = Friendship.objects.select_related('requester', 'recipient').get(pk=friendship_id)
    except (Friendship.DoesNotExist, ValueError, TypeError):
        raise exceptions.NotFound('Friendship not found')

    if not friendship.involves(actor):
        logger.warning(f"User {actor.pk} tried to access friendship {friendship.pk} they are not part of")
        raise exceptions.PermissionDenied('Access denied')

    return friendship


def create_request(actor, target_id):
    """
    Send a friend request from `actor` to the user identified by `target_id`.
    """
    target_id = _parse_id(target_id, 'friend_id')

    if target_id == actor.pk:
        raise exceptions.ValidationError({'friend_id': ['Cannot add yourself as friend']})

    target = User.objects.filter(pk=target_id).only('id', 'is_blocked').first()
    if target is None:
        raise exceptions.NotFound('User not found')

    if target.is_blocked:
        raise exceptions.ValidationError({'friend_id': ['User is blocked']})

    if Friendship.objects.filter(_pair_filter(actor.pk, target.pk)).exists():
        raise FriendshipConflict()

    # The unique pair constraint settles concurrent requests between the same users
    try:
        with transaction.atomic():
            friendship = Friendship.objects.create(
                requester=actor,
                recipient=target,
                status=Friendship.Status.PENDING,
            )
    except IntegrityError:
        logger.warning(f"Concurrent friend request between {actor.pk} and {target.pk} rejected")
        raise FriendshipConflict()

    logger.info(f"Friend request sent: {actor.pk} -> {target.pk}")
    return friendship


def _already_processed():
    return exceptions.ValidationError({'status': ['This friend request has already been processed']})


def list_for_actor(actor):
    return list(friendships_for(actor))


def transition(actor, friendship_id, new_status):
    """
    Answer a pending friend request. Only the recipient may do this, and
    only while the request is still pending.
    """
    if new_status not in Friendship.RESPONSE_STATUSES:
        raise exceptions.ValidationError({'status': ['Valid status is required']})

    friendship = get_friendship_for_actor(actor, friendship_id)

    if friendship.recipient_id != actor.pk:
        raise exceptions.PermissionDenied('Only recipient can change friendship status')

    if friendship.status != Friendship.Status.PENDING:
        raise _already_processed()

    # Conditional on PENDING so a concurrent answer cannot overwrite this one
    now = timezone.now()
    updated = (
        Friendship.objects
        .filter(pk=friendship.pk, status=Friendship.Status.PENDING)
        .update(status=new_status, updated_at=now)
    )
    if not updated:
        logger.warning(f"Friendship {friendship.pk} was answered concurrently, rejecting {new_status}")
        raise _already_processed()

    friendship.status = new_status
    friendship.updated_at = now

    logger.info(f"Friendship {friendship.pk} set to {new_status} by {actor.pk}")
    return friendship


def delete_friendship(actor, friendship_id):
    """
    Remove a friendship record. Either participant may do this at any time:
    withdrawing a request, unfriending, or clearing a declined/blocked record.
    """
    friendship = get_friendship_for_actor(actor, friendship_id)
    pk = friendship.pk

    with transaction.atomic():
        friendship.delete()

    logger.info(f"Friendship {pk} deleted by {actor.pk}")
