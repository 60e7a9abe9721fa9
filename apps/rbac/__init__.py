"""
RBAC (Role-Based Access Control) application.

Provides account identity and access control with:
- Email verified accounts with bearer token sessions
- Ability snapshots embedded in tokens
- Role and permission graph with assignment provenance
- Audit logging of account and RBAC changes
"""
