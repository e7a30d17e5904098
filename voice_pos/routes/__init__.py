"""
Routes Package for Voice POS
============================

- sales.py: Client configuration and sale persistence endpoints
- relay.py: WebSocket relay channel

Routers are registered by app_factory.create_app().
"""

from .relay import relay_router
from .sales import sales_router

__all__ = ["relay_router", "sales_router"]
