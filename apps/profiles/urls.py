"""
URL configuration for profiles, preferences, assessments and admin user management.
"""
from django.urls import path
from apps.profiles import views, views_admin

app_name = 'profiles'

urlpatterns = [
    path('auth/user-profile/<int:user_id>', views.UserProfileView.as_view(), name='user-profile'),

    # Preferences
    path('preferences', views.PreferenceListView.as_view(), name='preferences'),
    path('preferences/<str:name>', views.PreferenceDetailView.as_view(), name='preference-detail'),

    # Fitness assessments
    path('fitness-assessment', views.FitnessAssessmentCreateView.as_view(), name='assessment-create'),
    path('fitness-assessments', views.FitnessAssessmentListView.as_view(), name='assessment-list'),
    path(
        'fitness-assessments/weekly-status',
        views.WeeklyAssessmentStatusView.as_view(),
        name='assessment-weekly-status'
    ),
    path(
        'fitness-assessments/<int:assessment_id>',
        views.FitnessAssessmentDetailView.as_view(),
        name='assessment-detail'
    ),
    path('users/<int:user_id>/assessments', views.UserAssessmentsView.as_view(), name='user-assessments'),
    path(
        'users/<int:user_id>/assessments/<str:assessment_type>',
        views.UserAssessmentsView.as_view(),
        name='user-assessments-by-type'
    ),

    # Admin user management
    path('all-users', views_admin.AllUsersView.as_view(), name='all-users'),
    path('users/<int:user_id>', views_admin.AdminUserDetailView.as_view(), name='user-detail'),
    path('users/<int:user_id>/deactivate', views_admin.DeactivateUserView.as_view(), name='user-deactivate'),
    path('users/<int:user_id>/activate', views_admin.ActivateUserView.as_view(), name='user-activate'),
    path('users/<int:user_id>/onboarding', views_admin.UserOnboardingView.as_view(), name='user-onboarding'),
    path('users/<int:user_id>/preferences', views_admin.AdminUserPreferencesView.as_view(), name='user-preferences'),
    path('user-stats', views_admin.UserStatsView.as_view(), name='user-stats'),
    path('bulk-update-users', views_admin.BulkUpdateUsersView.as_view(), name='bulk-update-users'),
]
