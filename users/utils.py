from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.mail import send_mail
from django.db.models import Q
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
import logging

logger = logging.getLogger('cinetrack')
User = get_user_model()


def search_users(actor, query):
    """
    Directory search used by the "add friend" flow.

    Case-insensitive substring match on first name, last name or email,
    excluding the searching user and blocked accounts. Queries shorter than
    USER_SEARCH_MIN_LENGTH return an empty result instead of an error.
    """
    query = (query or '').strip()
    if len(query) < settings.USER_SEARCH_MIN_LENGTH:
        return User.objects.none()

    return (
        User.objects
        .exclude(pk=actor.pk)
        .filter(is_blocked=False)
        .filter(
            Q(first_name__icontains=query) |
            Q(last_name__icontains=query) |
            Q(email__icontains=query)
        )
        .order_by('first_name', 'last_name')[:settings.USER_SEARCH_LIMIT]
    )


def build_password_reset_link(user):
    uid = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    return f"{settings.PASSWORD_RESET_URL}?uid={uid}&token={token}"


def send_password_reset_email(user):
    """
    Send the password reset link to the user. Returns the number of
    messages delivered by the mail backend.
    """
    link = build_password_reset_link(user)
    message = (
        f"Hello {user.full_name},\n\n"
        "We received a request to reset your CineTrack password. "
        "Follow the link below to choose a new one:\n\n"
        f"{link}\n\n"
        "If you did not ask for this, you can ignore this email."
    )
    sent = send_mail(
        subject="Reset your CineTrack password",
        message=message,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    logger.info(f"Password reset email sent to {user.email}")
    return sent


def get_user_from_reset_token(uid, token):
    """Return the user a reset link belongs to, or None if the link is invalid."""
    try:
        user = User.objects.get(pk=force_str(urlsafe_base64_decode(uid)))
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        return None

    if not default_token_generator.check_token(user, token):
        return None
    return user
