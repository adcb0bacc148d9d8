import ulid


def new_id(prefix: str = "") -> str:
    """
    Generate a sortable, collision-free string id (ULID).
    """
    return prefix + ulid.new().str
