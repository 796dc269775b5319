from rest_framework import serializers
from .models import Friendship
from users.serializers import UserMiniSerializer


class FriendshipListSerializer(serializers.ModelSerializer):
    """
    Friendship as seen by one of its participants: the other user's public
    profile plus whether the viewer sent the request.
    """
    is_actor_initiator = serializers.SerializerMethodField()
    other_user = serializers.SerializerMethodField()

    class Meta:
        model = Friendship
        fields = ['id', 'status', 'created_at', 'updated_at', 'is_actor_initiator', 'other_user']
        read_only_fields = fields

    def get_is_actor_initiator(self, obj):
        return obj.requester_id == self.context['request'].user.pk

    def get_other_user(self, obj):
        """
        Return the other user in the friendship based on who is viewing
        """
        return UserMiniSerializer(obj.other_party(self.context['request'].user)).data


class FriendshipSerializer(serializers.ModelSerializer):
    """
    Serializer for Friendship with both participants expanded
    """
    requester = UserMiniSerializer(read_only=True)
    recipient = UserMiniSerializer(read_only=True)

    class Meta:
        model = Friendship
        fields = ['id', 'requester', 'recipient', 'status', 'created_at', 'updated_at']
        read_only_fields = fields


class FriendRequestCreateSerializer(serializers.Serializer):
    """
    Body of a new friend request. `target_id` is accepted as an alias of `friend_id`.
    """
    friend_id = serializers.CharField(required=False, allow_blank=True)
    target_id = serializers.CharField(required=False, allow_blank=True, write_only=True)

    def validate(self, attrs):
        friend_id = attrs.get('friend_id') or attrs.get('target_id')
        if not friend_id or not str(friend_id).strip():
            raise serializers.ValidationError({'friend_id': 'Friend ID is required'})
        return {'friend_id': friend_id.strip()}


class FriendshipStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
