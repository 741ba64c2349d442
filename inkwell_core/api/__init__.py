"""
Inkwell REST API package

Use ``api.app`` as the ASGI application, e.g. ``uvicorn inkwell_core.api:api.app``.
"""

from .api import api, create_app
