"""
TreeSync API Package.

FastAPI REST and WebSocket API serving the live directory mirror.
Requires Python 3.11+.
"""

# Import app lazily to avoid circular imports
# Use: from api.main import app
