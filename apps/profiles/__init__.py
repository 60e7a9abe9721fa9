"""
Profiles application.

Provides the fitness side of an account:
- Typed profile updates and onboarding state
- Key/value user preferences
- Fitness assessments and the fitness level derived from them
- Admin user management and statistics
"""
