from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import FriendshipViewSet

app_name = 'friends'

router = DefaultRouter()
router.register(r'', FriendshipViewSet, basename='friends')

urlpatterns = [
    path('', include(router.urls)),
]
