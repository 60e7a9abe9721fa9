"""
URL configuration for the FitNEase auth service.
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),

    # API Documentation
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('schema/swagger/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    path('api/', include('apps.core.urls')),

    # Registration, login, verification and tokens
    path('api/auth/', include('apps.rbac.urls_auth')),

    # Roles, permissions and assignments
    path('api/', include('apps.rbac.urls')),

    # Profiles, preferences, assessments and user administration
    path('api/', include('apps.profiles.urls')),
]
