"""Output surfaces: GitHub Actions workflow commands."""
