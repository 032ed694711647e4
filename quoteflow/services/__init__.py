"""Quote pipeline services."""
