def read_bool(data: dict, name: str, default=None):
    """
    Returns (value, error). Only JSON booleans are accepted; strings such as
    "false" are an error. Missing or null keys give ``default``.
    """
    value = data.get(name)
    if value is None:
        return default, None
    if not isinstance(value, bool):
        return None, f"{name} must be true or false"
    return value, None


def read_rating(data: dict, name: str = "rating"):
    """Returns (rating, error) for a whole-number 1..5 rating."""
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        return None, f"{name} must be a whole number between 1 and 5"
    return value, None
