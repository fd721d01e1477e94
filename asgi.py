"""
ASGI entry point.

Run with:
    uvicorn asgi:app --port 3120
"""

from app import create_app

app = create_app()
