from .cache import EvaluationCache
from .history import HistoryStore
from .jsonl_store import SessionJsonlStore

__all__ = ["EvaluationCache", "HistoryStore", "SessionJsonlStore"]
