from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, logout, forgot_password, user_me,
    user_list_create, user_detail, user_soft_delete, user_restore, user_set_password,
    my_profile, change_password, change_email,
    audit_log_list, audit_log_detail
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/forgot-password/', forgot_password, name='forgot-password'),
    path('auth/me/', user_me, name='user-me'),

    # Self-service endpoints
    path('users/me/profile/', my_profile, name='my-profile'),
    path('users/me/change-password/', change_password, name='change-password'),
    path('users/me/change-email/', change_email, name='change-email'),

    # User management endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),
    path('users/<int:pk>/soft-delete/', user_soft_delete, name='user-soft-delete'),
    path('users/<int:pk>/restore/', user_restore, name='user-restore'),
    path('users/<int:pk>/set-password/', user_set_password, name='user-set-password'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),
]
