"""
Core utilities shared across the Noteboard API.

This package hosts:
- configuration helpers (env vars, feature flags)
- credential primitives (password hashing, TOTP)
- cross-cutting HTTP helpers such as CSRF and rate limiting

Services depend on these primitives instead of reading os.environ or
touching cryptographic libraries directly.
"""
