"""Two-tier cache."""
