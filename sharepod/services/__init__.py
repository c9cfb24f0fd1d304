"""Share domain services."""
