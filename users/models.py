from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from cinetrack.models import ValidationModelMixin
from cinetrack.validators import username_validator, phone_validator
import logging

logger = logging.getLogger('cinetrack')


class UserManager(BaseUserManager):
    """
    Manager for users that log in with their email address.
    """
    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("The email address must be set")
        email = self.normalize_email(email).strip().lower()
        extra_fields.setdefault('username', email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.Role.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get('is_superuser') is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self._create_user(email, password, **extra_fields)

    def get_by_natural_key(self, username):
        return self.get(**{f'{self.model.USERNAME_FIELD}__iexact': username})


class User(AbstractUser, ValidationModelMixin):
    """
    Custom User model that extends Django's AbstractUser
    with the profile, role and blocking fields used by CineTrack.
    Users sign in with their email address.
    """
    class Role(models.TextChoices):
        USER = 'USER', 'User'
        ADMIN = 'ADMIN', 'Admin'

    # Kept for Django compatibility, defaults to the email address
    username = models.CharField(
        max_length=150,
        unique=True,
        validators=[username_validator],
        error_messages={
            'unique': "A user with that username already exists.",
        },
    )

    # Email is unique and case-insensitive
    email = models.EmailField(
        unique=True,
        error_messages={
            'unique': "A user with that email already exists.",
        },
    )

    phone = models.CharField(max_length=20, blank=True, null=True, validators=[phone_validator])
    profile_image_url = models.URLField(max_length=500, blank=True, null=True)
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.USER)

    # Account status
    is_blocked = models.BooleanField(default=False)
    block_reason = models.TextField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['first_name', 'last_name'], name='users_user_name_idx'),
            models.Index(fields=['is_blocked'], name='users_user_blocked_idx'),
        ]

    def __str__(self):
        return self.email

    def save(self, *args, **kwargs):
        """Override save to normalize the email and default the username to it"""
        if self.email:
            self.email = self.email.strip().lower()
        if not self.username:
            self.username = self.email

        super().save(*args, **kwargs)

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def full_name(self):
        """Get the user's full name or email if not available"""
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    def block(self, reason=None):
        """
        Block the user. Blocked users cannot sign in, use the API
        or receive new friend requests.
        """
        self.is_blocked = True
        self.block_reason = reason
        self.save(update_fields=['is_blocked', 'block_reason', 'updated_at'])
        logger.info(f"User {self.email} has been blocked. Reason: {reason}")

    def unblock(self):
        """Unblock a user"""
        if self.is_blocked:
            self.is_blocked = False
            self.block_reason = None
            self.save(update_fields=['is_blocked', 'block_reason', 'updated_at'])
            logger.info(f"User {self.email} has been unblocked.")
