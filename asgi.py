"""
ASGI entry point.

Run with:
    uvicorn asgi:app --reload

Set RUN_SWEEPER=false when the expiry sweeper runs as its own process
(see start_sweeper.py).
"""

from app import create_app

app = create_app()
