"""Kouban HTTP API (FastAPI)."""
