from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView
from .views import (
    UserViewSet, AuthTokenObtainPairView, RegistrationView,
    PasswordResetRequestView, PasswordResetConfirmView, logout_view
)

app_name = 'users'

# Create a router for viewsets
router = DefaultRouter()
router.register(r'', UserViewSet, basename='user')

urlpatterns = [
    # Auth routes
    path('auth/token/', AuthTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/register/', RegistrationView.as_view(), name='register'),
    path('auth/logout/', logout_view, name='logout'),
    path('auth/password-reset/', PasswordResetRequestView.as_view(), name='password_reset_request'),
    path('auth/password-reset/confirm/', PasswordResetConfirmView.as_view(), name='password_reset_confirm'),

    # Profile and directory search (me/, search/)
    path('', include(router.urls)),
]
