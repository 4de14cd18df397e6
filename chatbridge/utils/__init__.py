"""Shared utilities."""

from .time import utc_now, ensure_aware, parse_timestamp

__all__ = ["utc_now", "ensure_aware", "parse_timestamp"]
