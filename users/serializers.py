from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from cinetrack.serializers import BaseSerializer
from cinetrack.validators import NotBlankValidator
import logging

logger = logging.getLogger('cinetrack')
User = get_user_model()

PASSWORD_STYLE = {'input_type': 'password'}
REQUIRED_NAME = {'required': True, 'allow_blank': False, 'validators': [NotBlankValidator()]}


def normalize_email(value):
    return value.strip().lower()


def email_taken(email, exclude=None):
    """True when another account already uses ``email`` (case-insensitive)."""
    matches = User.objects.filter(email__iexact=email)
    if exclude is not None:
        matches = matches.exclude(pk=exclude.pk)
    return matches.exists()


def check_password_strength(password, user=None, field='password'):
    """Run AUTH_PASSWORD_VALIDATORS and re-raise failures under ``field``."""
    try:
        validate_password(password, user)
    except DjangoValidationError as e:
        logger.warning(f"Rejected weak password for {getattr(user, 'email', None) or 'new account'}")
        raise serializers.ValidationError({field: e.messages})


def strip_names(data):
    for name in ('first_name', 'last_name'):
        if data.get(name) is not None:
            data[name] = data[name].strip()
    return data


class UserMiniSerializer(serializers.ModelSerializer):
    """
    Public projection of a user, shown to other users
    (friend lists, directory search).
    """
    created_at = serializers.DateTimeField(source='date_joined', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'first_name', 'last_name', 'email', 'profile_image_url', 'created_at']
        read_only_fields = fields


class UserSerializer(BaseSerializer):
    """Profile of the authenticated user."""
    created_at = serializers.DateTimeField(source='date_joined', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'phone',
            'profile_image_url', 'role', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'role', 'created_at', 'updated_at']


class UserRegistrationSerializer(BaseSerializer):
    password = serializers.CharField(write_only=True, style=PASSWORD_STYLE)
    password_confirm = serializers.CharField(write_only=True, style=PASSWORD_STYLE)

    class Meta:
        model = User
        fields = ['email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone']
        extra_kwargs = {'first_name': REQUIRED_NAME, 'last_name': REQUIRED_NAME}

    def validate_email(self, value):
        value = normalize_email(value)
        if email_taken(value):
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def validate(self, data):
        if data['password'] != data.pop('password_confirm'):
            raise serializers.ValidationError({"password": "Password fields don't match."})

        # Similarity validators need the would-be user's attributes
        candidate = User(
            email=data.get('email', ''),
            first_name=data.get('first_name', ''),
            last_name=data.get('last_name', ''),
        )
        check_password_strength(data['password'], candidate)
        return strip_names(data)

    def create(self, validated_data):
        user = User.objects.create_user(**validated_data)
        logger.info(f"Registered user {user.pk} ({user.email})")
        return user


class UserUpdateSerializer(BaseSerializer):
    """
    Partial profile update. Changing the password needs the current one.
    """
    current_password = serializers.CharField(write_only=True, required=False, style=PASSWORD_STYLE)
    new_password = serializers.CharField(write_only=True, required=False, style=PASSWORD_STYLE)

    class Meta:
        model = User
        fields = [
            'email', 'first_name', 'last_name', 'phone', 'profile_image_url',
            'current_password', 'new_password',
        ]
        extra_kwargs = {
            'first_name': {'validators': [NotBlankValidator('First name cannot be empty.')]},
            'last_name': {'validators': [NotBlankValidator('Last name cannot be empty.')]},
        }

    def validate_email(self, value):
        value = normalize_email(value)
        if email_taken(value, exclude=self.instance):
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def validate(self, data):
        new_password = data.get('new_password')
        if new_password is None:
            return strip_names(data)

        current = data.get('current_password')
        if not current:
            raise serializers.ValidationError(
                {"current_password": "Current password is required to set a new password."}
            )
        if not self.instance.check_password(current):
            raise serializers.ValidationError({"current_password": "Current password is not correct."})

        check_password_strength(new_password, self.instance, field='new_password')
        return strip_names(data)

    def update(self, instance, validated_data):
        validated_data.pop('current_password', None)
        new_password = validated_data.pop('new_password', None)

        instance = super().update(instance, validated_data)
        if new_password:
            instance.set_password(new_password)
            instance.save(update_fields=['password', 'updated_at'])
            logger.info(f"User {instance.pk} changed their password")
        return instance


class AdminUserSerializer(BaseSerializer):
    """
    Row of the admin user list. ``entries_count`` and ``friendships_count``
    come from queryset annotations.
    """
    created_at = serializers.DateTimeField(source='date_joined', read_only=True)
    entries_count = serializers.IntegerField(read_only=True)
    friendships_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'role', 'is_blocked',
            'block_reason', 'created_at', 'profile_image_url',
            'entries_count', 'friendships_count',
        ]
        read_only_fields = fields


class AdminUserCreateSerializer(BaseSerializer):
    password = serializers.CharField(write_only=True, min_length=6, style=PASSWORD_STYLE)
    role = serializers.ChoiceField(choices=User.Role.choices, default=User.Role.USER)

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'password', 'role']
        read_only_fields = ['id']
        extra_kwargs = {'first_name': REQUIRED_NAME, 'last_name': REQUIRED_NAME}

    def validate_email(self, value):
        value = normalize_email(value)
        if email_taken(value):
            raise serializers.ValidationError("User with this email already exists")
        return value

    def validate(self, data):
        return strip_names(data)

    def create(self, validated_data):
        user = User.objects.create_user(**validated_data)
        logger.info(f"Admin created user {user.pk} ({user.email}) with role {user.role}")
        return user


class BlockUserSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate_email(self, value):
        return normalize_email(value)


class PasswordResetConfirmSerializer(serializers.Serializer):
    """
    Body of the reset link form: the encoded user id, the one-time token
    and the replacement password.
    """
    uid = serializers.CharField()
    token = serializers.CharField()
    password = serializers.CharField(style=PASSWORD_STYLE)

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)
        return value
