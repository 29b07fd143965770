"""HTTP surface of the lifecycle engine."""

from lifecycle_api.app import create_app

__all__ = ["create_app"]
