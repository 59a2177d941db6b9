"""Helpers shared by the PostgreSQL repositories."""


def affected_rows(status: str) -> int:
    """Row count from an adapter status string such as ``"EXECUTE 1"``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0
