"""SVG chart rendering."""
