from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import MediaEntryViewSet

app_name = 'library'

router = DefaultRouter()
router.register(r'entries', MediaEntryViewSet, basename='entries')

urlpatterns = [
    path('', include(router.urls)),
]
