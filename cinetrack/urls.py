"""
URL configuration for the CineTrack project.

Every API route lives under /api/. See
https://docs.djangoproject.com/en/5.1/topics/http/urls/
"""
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenVerifyView
from .admin import cinetrack_admin_site
from .views import health_check
from library.views import stats_view

# Import admin registrations to ensure they're loaded
from . import admin_registrations  # noqa: F401

urlpatterns = [
    # Admin - with custom admin site
    path('admin/', cinetrack_admin_site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # JWT Authentication endpoints
    path('api/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # App URLs
    path('api/users/', include('users.urls')),
    path('api/admin/', include('users.admin_urls')),
    path('api/friends/', include('friends.urls')),
    path('api/library/', include('library.urls')),

    # Public endpoints
    path('api/stats/', stats_view, name='stats'),
    path('api/health/', health_check, name='health'),
]
