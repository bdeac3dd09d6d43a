"""Subject taxonomy for rule lookup.

Subjects passed to a check are classes, instances, string tags, or an
"any of" selector over several of those. :class:`SubjectResolver` turns a
subject into the ordered identities used to look rules up:

- class ``Article``        -> ``[ALL, Article, <ancestors...>, "Article"]``
- instance of ``Article``  -> the instance itself (when hashable), then
                              the identities of the class
- tag ``"stats"``          -> ``["stats", ALL]``

Identities are used for indexing and relevance only; they never decide
anything about conditions.

Example
-------
::

    resolver = SubjectResolver()
    resolver.register(Article, ancestors=[Publishable])
    resolver.identities_for(Article)
    # ('all', Article, Publishable, 'Article')
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping

from ability_engine.rules.rule import ALL, is_hashable

logger = logging.getLogger(__name__)

ANY_KEY: str = "any"


class AnyOf:
    """Multi-subject selector: a check passes if any member passes.

    Examples
    --------
    ::

        ability.allowed("create", AnyOf(Project, Comment))
    """

    __slots__ = ("members",)

    def __init__(self, *members: object) -> None:
        self.members: tuple[object, ...] = members

    def __iter__(self) -> Iterator[object]:
        return iter(self.members)

    def __len__(self) -> int:
        return len(self.members)

    def __repr__(self) -> str:
        return f"AnyOf({', '.join(repr(m) for m in self.members)})"


def is_multi_subject(subject: object) -> bool:
    """True for an :class:`AnyOf` or a mapping with an ``"any"`` key."""
    return isinstance(subject, AnyOf) or (
        isinstance(subject, Mapping) and ANY_KEY in subject
    )


class SubjectResolver:
    """Resolves subjects into the identities used for rule lookup.

    Classes registered with :meth:`register` use the ancestry chain they
    were registered with. Other classes use their method resolution order.
    """

    def __init__(self) -> None:
        self._ancestry: dict[type, tuple[type, ...]] = {}

    def register(self, subject_type: type, ancestors: Iterable[type] = ()) -> None:
        """Declare the ancestry chain of ``subject_type``, most derived first.

        ``subject_type`` itself is always the first entry of the chain.
        """
        chain = [subject_type]
        chain.extend(a for a in ancestors if a is not subject_type)
        self._ancestry[subject_type] = tuple(chain)
        logger.debug("Registered subject %s with ancestry %s", subject_type.__name__, chain)

    def ancestry(self, subject_type: type) -> tuple[type, ...]:
        registered = self._ancestry.get(subject_type)
        if registered is not None:
            return registered
        return subject_type.__mro__

    def identities_for(self, subject: object) -> tuple[object, ...]:
        """Return the identities to look up for ``subject``, in lookup order."""
        if isinstance(subject, str):
            return (subject, ALL)
        if isinstance(subject, type):
            return (ALL, *self.ancestry(subject), subject.__name__)
        subject_type = type(subject)
        identities = (ALL, *self.ancestry(subject_type), subject_type.__name__)
        if is_hashable(subject):
            return (subject, *identities)
        return identities

    def extract(self, subject: object) -> list[object]:
        """Return the individual subjects a check must evaluate, in order."""
        if isinstance(subject, AnyOf):
            return list(subject.members)
        if isinstance(subject, Mapping) and ANY_KEY in subject:
            return list(subject[ANY_KEY])
        return [subject]
