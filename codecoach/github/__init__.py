"""GitHub account linking."""
