from django.urls import path
from .views import (
    login, create_business_with_user, signup_with_invitation, SphereTokenRefreshView,
    user_me, health,
    business_info,
    user_list, invite_user, invitation_list, invitation_revoke, update_user_role, remove_user,
    audit_log_list,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', login, name='login'),
    path('auth/business/create/', create_business_with_user, name='business-create'),
    path('auth/signup/invitation/', signup_with_invitation, name='signup-invitation'),
    path('auth/refresh/', SphereTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # Business endpoint
    path('business/', business_info, name='business-info'),

    # User endpoints
    path('users/', user_list, name='user-list'),
    path('users/invite/', invite_user, name='user-invite'),
    path('users/invitations/', invitation_list, name='invitation-list'),
    path('users/invitations/<int:pk>/', invitation_revoke, name='invitation-revoke'),
    path('users/<int:pk>/role/', update_user_role, name='user-role-update'),
    path('users/<int:pk>/', remove_user, name='user-remove'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),

    path('health/', health, name='health'),
]
