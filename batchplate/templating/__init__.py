"""Template resolution, gathering and rendering."""
