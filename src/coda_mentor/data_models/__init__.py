from .session import Reaction, SessionRecord, SessionResults

__all__ = [
    "Reaction",
    "SessionRecord",
    "SessionResults",
]
