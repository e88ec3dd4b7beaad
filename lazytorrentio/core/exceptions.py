class BadRequestError(Exception):
    """Raised for client input the add-on cannot serve (e.g. unknown content type)."""
