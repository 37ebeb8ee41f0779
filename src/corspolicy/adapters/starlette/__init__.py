"""Starlette adapter for corspolicy."""

from corspolicy.adapters.starlette.middleware import PolicyCORSMiddleware

__all__ = ["PolicyCORSMiddleware"]
