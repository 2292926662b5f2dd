"""Test suite for prose-fastapi."""
