"""
App layer: HTTP server (FastAPI + uvicorn).

Roles:
- app factory, error handlers, access log (main.py)
- template pages + renewable surplus API (routes/)
- process lifecycle: bind, serve, graceful shutdown, exit codes (server.py)

Note: folder split
- educk/templates/ → code (template store)
- templates/ (root) → template files (data)
"""
