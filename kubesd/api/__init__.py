"""REST API layer for kubesd.

Exposes:
    create_app -- FastAPI application factory.
"""

from kubesd.api.app import create_app

__all__ = ["create_app"]
