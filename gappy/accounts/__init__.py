"""
Backend account state.

Responsibilities:
- Keep each account's synced quiz state in memory.
- Track which user identity each account is linked to.
"""
