"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: warehouse connection and repositories over the coaching views
- auth: accounts, passwords and bearer-token sessions (stored in Snowflake)

These wrappers translate between external formats and our domain models.
"""
