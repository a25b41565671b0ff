"""
HTTP API for the table booking engine.

This package provides a single FastAPI application that exposes:
- Reservation and payment-intent endpoints for customers
- Admin endpoints for manual payment confirmation and booking management
- The periodic expiration job, tied to the application lifespan
"""

from api.main import app, create_app

__all__ = ["app", "create_app"]
