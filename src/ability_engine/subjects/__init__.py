"""Subject resolution and multi-subject selectors."""
from __future__ import annotations

from ability_engine.subjects.resolver import AnyOf, SubjectResolver, is_multi_subject

__all__ = ["AnyOf", "SubjectResolver", "is_multi_subject"]
