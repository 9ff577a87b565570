"""Service layer wired into the API by the app factory."""
