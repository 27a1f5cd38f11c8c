"""Starlette middleware for JWT authentication."""

from custodia.middleware.jwt_auth import JWTAuthMiddleware

__all__ = ["JWTAuthMiddleware"]
