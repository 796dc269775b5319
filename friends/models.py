from django.db import models
from django.db.models.functions import Greatest, Least
from django.conf import settings
from cinetrack.models import TimeStampedModel


class Friendship(TimeStampedModel):
    """
    Model representing a friendship (or a request for one) between two users.

    The requester created the record; only the recipient may answer it.
    At most one record exists per pair of users, whatever its direction.
    """
    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        ACCEPTED = 'ACCEPTED', 'Accepted'
        DECLINED = 'DECLINED', 'Declined'
        BLOCKED = 'BLOCKED', 'Blocked'

    # Statuses a recipient can move a pending request to
    RESPONSE_STATUSES = (Status.ACCEPTED, Status.DECLINED, Status.BLOCKED)

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='friend_requests_sent'
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='friend_requests_received'
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)

    class Meta:
        ordering = ['-updated_at']
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(requester=models.F('recipient')),
                name='friendship_no_self',
            ),
            models.UniqueConstraint(
                Least('requester', 'recipient'),
                Greatest('requester', 'recipient'),
                name='friendship_unique_pair',
            ),
        ]

    def __str__(self):
        return f"{self.requester.email} -> {self.recipient.email} ({self.status})"

    def involves(self, user):
        return user.pk in (self.requester_id, self.recipient_id)

    def other_party(self, user):
        """Return the participant that is not `user`."""
        return self.recipient if self.requester_id == user.pk else self.requester
