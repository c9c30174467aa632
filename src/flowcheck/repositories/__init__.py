"""Node schema repositories."""
