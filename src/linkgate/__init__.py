"""
LinkGate - Session-gated content discovery with single-use opaque links

A FastAPI service that issues short-lived session tokens, encrypts search
payloads under them, and hands out download references that redeem once.
"""

__version__ = "0.1.0"

from .main import app

__all__ = ["app"]
