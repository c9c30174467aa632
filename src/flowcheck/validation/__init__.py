"""Node configuration validation: expressions, scorer, validators."""
