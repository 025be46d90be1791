from django.urls import path
from .views import (
    CustomTokenRefreshView, register_with_credentials, register_with_provider, login,
    auth_provider_detail, user_me,
    user_list, user_count, user_detail, user_roles,
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register_with_credentials, name='register'),
    path('auth/register-with-provider/', register_with_provider, name='register-with-provider'),
    path('auth/login/', login, name='login'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/providers/<str:user_id>/', auth_provider_detail, name='auth-provider-detail'),

    # User endpoints
    path('users/', user_list, name='user-list'),
    path('users/count/', user_count, name='user-count'),
    path('users/<str:pk>/', user_detail, name='user-detail'),
    path('users/<str:pk>/roles/', user_roles, name='user-roles'),
]
