"""
HTTP API (FastAPI).

Import impactwrap.api.main for the application factory and module-level app.
"""
