"""Core types: errors, configuration and the abstract suite representation."""
