"""HTTP route definitions."""
