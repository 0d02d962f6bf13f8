"""
Impact Wrapped

Donor impact reports for food banks:
- CSV ingestion with per-row validation and duplicate detection
- Deterministic impact tokens for shareable donor pages
- Impact metrics (meals, people, pounds, CO2, water) per donor
- FastAPI service and CLI
"""

__version__ = "0.1.0"
