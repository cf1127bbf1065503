"""
FitCoach - A client/coach fitness-coaching backend.

This package contains the complete application:
- core: Framework-agnostic identity, routing and view logic
- infrastructure: External collaborators (data warehouse, auth)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
