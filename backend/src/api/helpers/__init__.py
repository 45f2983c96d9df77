"""API helper utilities."""
from api.helpers.event_stream import change_event_stream, format_sse

__all__ = [
    "change_event_stream",
    "format_sse",
]
