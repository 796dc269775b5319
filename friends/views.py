from rest_framework import status
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema
from .models import Friendship
from .serializers import (
    FriendshipListSerializer, FriendshipSerializer,
    FriendRequestCreateSerializer, FriendshipStatusSerializer,
)
from . import services
from cinetrack.views import BaseModelViewSet
import logging

logger = logging.getLogger('cinetrack')


class FriendshipViewSet(BaseModelViewSet):
    """
    API viewset for friendships and friend requests.

    Every friendship the current user takes part in is listed here, whoever
    sent it. Only the recipient answers a request (PUT); either side deletes.
    """
    queryset = Friendship.objects.all()
    serializer_class = FriendshipSerializer
    http_method_names = ['get', 'post', 'put', 'delete', 'head', 'options']

    def get_queryset(self):
        return services.friendships_for(self.request.user)

    def get_serializer_class(self):
        if self.action == 'list':
            return FriendshipListSerializer
        if self.action == 'create':
            return FriendRequestCreateSerializer
        if self.action == 'update':
            return FriendshipStatusSerializer
        return FriendshipSerializer

    @extend_schema(responses=FriendshipListSerializer(many=True))
    def list(self, request, *args, **kwargs):
        friendships = services.list_for_actor(request.user)
        serializer = FriendshipListSerializer(friendships, many=True, context={'request': request})
        return Response(serializer.data)

    @extend_schema(request=FriendRequestCreateSerializer, responses={201: FriendshipSerializer})
    def create(self, request, *args, **kwargs):
        """
        Send a friend request
        """
        serializer = FriendRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        friendship = services.create_request(request.user, serializer.validated_data['friend_id'])
        return Response(FriendshipSerializer(friendship).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None, *args, **kwargs):
        friendship = services.get_friendship_for_actor(request.user, pk)
        return Response(FriendshipSerializer(friendship).data)

    @extend_schema(request=FriendshipStatusSerializer, responses=FriendshipSerializer)
    def update(self, request, pk=None, *args, **kwargs):
        """
        Accept, decline or block a friend request sent to you
        """
        serializer = FriendshipStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        friendship = services.transition(request.user, pk, serializer.validated_data['status'])
        return Response(FriendshipSerializer(friendship).data)

    def destroy(self, request, pk=None, *args, **kwargs):
        """
        Withdraw a request, unfriend, or clear a declined/blocked record
        """
        services.delete_friendship(request.user, pk)
        return Response({'success': True}, status=status.HTTP_200_OK)
