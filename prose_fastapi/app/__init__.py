"""Prose FastAPI application package."""
