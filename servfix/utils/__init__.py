"""
Shared utilities for servfix.
"""
import uuid


def generate_id(prefix=None):
    """Generate short UUID for database records.

    Args:
        prefix: Optional prefix for the ID (e.g., 'rep', 'cmp', 'aud')

    Returns:
        String ID like 'rep-a1b2c3d4' or just 'a1b2c3d4' if no prefix
    """
    short_uuid = uuid.uuid4().hex[:8]
    if prefix:
        return f"{prefix}-{short_uuid}"
    return short_uuid
