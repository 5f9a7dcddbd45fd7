import uuid


def new_id() -> str:
    """Opaque primary key for ledger rows."""
    return str(uuid.uuid4())
