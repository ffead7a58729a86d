class AdminInputError(ValueError):
    """Admin request is well-formed JSON but semantically invalid (-> 400)."""


class AdminConflictError(ValueError):
    """Unique key already taken (-> 409)."""
