"""English Learning Platform API."""
