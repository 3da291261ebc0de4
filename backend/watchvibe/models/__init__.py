# watchvibe/models/__init__.py
"""
Database models module initialization.
Exports the Tortoise ORM models and their enums for convenient imports.

Models exported:
- User: User account and authentication model
- UserRole / LoginType: enumerations stored on User
"""
from .user import LoginType, User, UserRole
