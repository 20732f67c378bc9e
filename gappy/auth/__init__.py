"""
Account authentication for the backend.

Responsibilities:
- Issue and verify HMAC-signed account tokens.
- Resolve the calling account and bearer token from request headers.
"""
