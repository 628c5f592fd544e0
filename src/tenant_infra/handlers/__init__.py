"""Lambda entry points, one module per workflow step."""
