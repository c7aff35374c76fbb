"""
Traktir Restaurant Service

Menu, orders, reviews and a two-mode chat assistant (canned replies or a
language model gated by a daily token allowance) behind a FastAPI backend
with a Celery worker for reply generation.
"""

__version__ = "1.0.0"
