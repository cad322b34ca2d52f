"""
CODA mentor evaluator.

Scores mentors who teach sign language to virtual CODA students, forecasts the
student's progression, and proposes remediation material for weak teaching
skills.
"""

__version__ = "0.1.0"

from .config.loader import load_settings  # noqa: E402
from .evaluation.evaluator import CompetencyEvaluator  # noqa: E402

__all__ = ["CompetencyEvaluator", "__version__", "load_settings"]
