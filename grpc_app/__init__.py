"""gRPC transport layer for the application.

This package hosts:
- Server construction and interceptors.
- Thin service adapters that map Struct requests to application services.
"""
