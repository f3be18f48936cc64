"""
Core business logic components.

This package contains the session and opaque-link lifecycle manager:
- Key-value store backends
- Session store and link vault
- Access key authentication and rate limiting
- Gateway facade serializing all state mutations
- Payload encryption, content source client, metrics and health
"""
