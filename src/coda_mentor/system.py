from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Union

from coda_mentor.config import Settings, load_settings
from coda_mentor.data_models import SessionRecord
from coda_mentor.evaluation import CompetencyEvaluator, EvaluationResult, LevelClassifier
from coda_mentor.evaluation.models import OrdinalLevel
from coda_mentor.storage import EvaluationCache, HistoryStore, SessionJsonlStore
from coda_mentor.utils.logging import configure_logging

logger = logging.getLogger(__name__)


class MentorSystem:
    """
    Facade wiring configuration, session storage, and the evaluator together.

    The CLI and embedding applications go through this class so that logging,
    cache bounds, and the session file all come from one `Settings` object
    (normally `config/default.yaml`).

    Attributes
    ----------
    settings : Settings
        Loaded configuration.
    session_store : SessionJsonlStore
        JSONL file holding recorded teaching sessions.
    evaluator : CompetencyEvaluator
        Evaluation pipeline with its cache and per-mentor history.
    """

    def __init__(self, settings: Settings, session_store: Optional[SessionJsonlStore] = None):
        self.settings = settings
        configure_logging(settings.logging.level, settings.logging.use_json)

        self.session_store = session_store or SessionJsonlStore(settings.paths.sessions_file)
        self.classifier = LevelClassifier()
        self.evaluator = CompetencyEvaluator(
            settings.evaluation,
            cache=EvaluationCache(
                max_entries=settings.cache.max_entries,
                ttl_seconds=settings.cache.ttl_seconds,
            ),
            history=HistoryStore(max_entries=settings.cache.history_size),
            classifier=self.classifier,
        )
        logger.debug("Mentor system ready with sessions at %s", self.session_store.path)

    @classmethod
    def from_config(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        sessions_path: Optional[Path] = None,
    ) -> "MentorSystem":
        """Load settings from YAML and optionally point at a different session file."""
        settings = load_settings(config_path)
        store = SessionJsonlStore(sessions_path) if sessions_path else None
        return cls(settings, session_store=store)

    def record_sessions(self, sessions: Iterable[Union[SessionRecord, Mapping[str, Any]]]) -> int:
        """Validate and persist sessions, replacing earlier copies with the same id."""
        records = [
            session if isinstance(session, SessionRecord) else SessionRecord.model_validate(session)
            for session in sessions
        ]
        self.session_store.upsert(records)
        return len(records)

    def evaluate_mentor(self, mentor_id: str) -> EvaluationResult:
        """Evaluate every stored session for `mentor_id`."""
        sessions = self.session_store.for_mentor(mentor_id)
        logger.info("Loaded %d sessions for mentor %s", len(sessions), mentor_id)
        return self.evaluator.evaluate(mentor_id, sessions)

    def evaluate_all(self) -> List[EvaluationResult]:
        return [self.evaluate_mentor(mentor_id) for mentor_id in self.session_store.mentors()]

    def levels(self) -> List[OrdinalLevel]:
        return list(self.classifier.levels())
