"""Language aggregation."""
