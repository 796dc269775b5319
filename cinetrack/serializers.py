from rest_framework import serializers
import logging

logger = logging.getLogger('cinetrack')


class BaseSerializer(serializers.ModelSerializer):
    """
    ModelSerializer that logs rejected input together with the requesting
    user, so client-side validation bugs show up in the server log.
    """

    def is_valid(self, raise_exception=False):
        valid = super().is_valid(raise_exception=False)

        if not valid:
            request = self.context.get('request')
            user_id = getattr(getattr(request, 'user', None), 'pk', None)
            logger.warning(
                f"{self.__class__.__name__} rejected input from user {user_id}: {dict(self.errors)}"
            )
            if raise_exception:
                raise serializers.ValidationError(self.errors)

        return valid


class TimeStampedModelSerializer(BaseSerializer):
    """
    Base serializer for models built on TimeStampedModel.
    """
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)
