"""Version comparison, breaking changes and upgrade planning."""
