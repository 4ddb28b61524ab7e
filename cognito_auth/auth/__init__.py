"""
Authentication modules for cognito-auth.

This package contains:
- challenges.py: sign-in state machine (password -> MFA -> new password)
- sessions.py: current user and session lookup
- credentials.py: identity pool credential derivation and guest fallback
- facade.py: the public ``Auth`` operation set
"""
from cognito_auth.auth.facade import Auth

__all__ = ["Auth"]
