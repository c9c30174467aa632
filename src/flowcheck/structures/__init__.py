"""Property type structure registry."""
