"""
URL routing for authentication endpoints.
"""
from django.urls import path
from apps.rbac.views_auth import (
    RegistrationView, LoginView, VerifyEmailView, VerifyCodeView,
    ResendVerificationView, EmailVerificationStatusView,
    DebugVerificationCodeView, DebugUserStatusView, DebugResetVerificationView,
    CurrentUserView, LogoutView, LogoutAllView, RefreshTokenView,
    TokenListView, TokenRevokeView, ValidateTokenView, CreateServiceTokenView,
)

app_name = 'auth'

urlpatterns = [
    # Registration and login
    path('register', RegistrationView.as_view(), name='register'),
    path('login', LoginView.as_view(), name='login'),
    path('logout', LogoutView.as_view(), name='logout'),
    path('logout-all', LogoutAllView.as_view(), name='logout-all'),
    path('user', CurrentUserView.as_view(), name='current-user'),

    # Email verification
    path('verify-email', VerifyEmailView.as_view(), name='verify-email'),
    path('verify-code', VerifyCodeView.as_view(), name='verify-code'),
    path('resend-verification', ResendVerificationView.as_view(), name='resend-verification'),
    path('email-verification-status/<int:user_id>', EmailVerificationStatusView.as_view(),
         name='email-verification-status'),

    # Debug helpers (DEBUG only)
    path('debug-verification-code/<str:email>', DebugVerificationCodeView.as_view(),
         name='debug-verification-code'),
    path('debug-user-status/<str:email>', DebugUserStatusView.as_view(), name='debug-user-status'),
    path('debug-reset-verification/<str:email>', DebugResetVerificationView.as_view(),
         name='debug-reset-verification'),

    # Tokens
    path('refresh', RefreshTokenView.as_view(), name='refresh'),
    path('tokens', TokenListView.as_view(), name='token-list'),
    path('tokens/<int:token_id>', TokenRevokeView.as_view(), name='token-revoke'),
    path('validate', ValidateTokenView.as_view(), name='validate'),
    path('create-service-token', CreateServiceTokenView.as_view(), name='create-service-token'),
]
