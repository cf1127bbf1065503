"""
Auth collaborator: accounts, passwords and bearer-token sessions,
stored in Snowflake.
"""

from .service import AuthError, AuthService, SignInResult, SignInThrottled

__all__ = ["AuthError", "AuthService", "SignInResult", "SignInThrottled"]
