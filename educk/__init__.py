"""
educk: template-driven HTTP server + renewable surplus API.

Layout:
- educk/app/ → FastAPI app, routes, uvicorn server process
- educk/core/ → settings, logging
- educk/domain/ → errors, constants
- educk/templates/ → template store (code)
- templates/ (root) → template files (data)
- educk/entsoe/ → ENTSO-E Transparency Platform client + analysis
"""

__version__ = "0.1.0"
