class InvalidConfiguration(ValueError):
    """Raised for bad coordinates, unknown method keys, malformed dates and similar input errors."""
