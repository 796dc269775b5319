from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import AdminUserViewSet

app_name = 'admin-api'

router = DefaultRouter()
router.register(r'users', AdminUserViewSet, basename='admin-users')

urlpatterns = [
    path('', include(router.urls)),
]
