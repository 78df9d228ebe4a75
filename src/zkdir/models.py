"""Defines classes for representing notes, the store index, and search results.

The most important classes are :class:`NoteMeta` and :class:`Note`.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional


ROOT_ID = 0
"""Id of the top-level note, which every store has."""

ROOT_BODY = 'Top Level\n'


def title_of(body: str) -> str:
    """Returns the first line of the body, without its line terminator.

    An empty body has an empty title.
    """
    if not body:
        return ''
    line = body.split('\n', 1)[0]
    return line[:-1] if line.endswith('\r') else line


@dataclass
class NoteMeta:
    """Identity and graph position of one note.

    ``parent`` records the note this one was created under (or re-parented to). A note can also be listed in the
    :attr:`subnotes` of other notes via :meth:`zkdir.store.NoteStore.link_note`, so ``parent`` is advisory:
    traversal and orphan detection only look at :attr:`subnotes`.
    """

    id: int
    """Non-negative, unique, never reused."""

    title: str = ''
    """The first line of the body, cached."""

    parent: int = ROOT_ID

    subnotes: List[int] = field(default_factory=list)
    """Child note ids in insertion order, without duplicates."""

    files: List[str] = field(default_factory=list)
    """Names of the files attached to the note, without duplicates."""

    def copy(self) -> NoteMeta:
        return NoteMeta(self.id, self.title, self.parent, list(self.subnotes), list(self.files))

    def as_json(self) -> dict:
        """Returns a dict representing the instance, suitable for serializing as json."""
        return {
            'id': self.id,
            'title': self.title,
            'parent': self.parent,
            'subnotes': list(self.subnotes),
            'files': list(self.files),
        }


@dataclass
class Note:
    """A note's metadata plus its full body text."""

    meta: NoteMeta
    body: str = ''

    @property
    def id(self) -> int:
        return self.meta.id

    @property
    def title(self) -> str:
        return self.meta.title

    @property
    def files(self) -> List[str]:
        return self.meta.files

    @property
    def subnotes(self) -> List[int]:
        return self.meta.subnotes


@dataclass
class StoreIndex:
    """The whole-store view: every note's metadata plus the next id to allocate."""

    next_id: int = 1
    notes: Dict[int, NoteMeta] = field(default_factory=dict)


@dataclass
class SearchResult:
    """One matching line from :func:`zkdir.search.search`, or a failure to search one note.

    Exactly one of :attr:`line` and :attr:`error` is set.
    """

    note_id: int

    line: Optional[str] = None
    """The matching line, without its trailing newline."""

    error: Optional[BaseException] = None
    """Set if the note's body could not be read."""

    def as_json(self) -> dict:
        """Returns a dict representing the instance, suitable for serializing as json."""
        return {
            'note_id': self.note_id,
            'line': self.line,
            'error': str(self.error) if self.error else None,
        }
