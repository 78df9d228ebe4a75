"""Exceptions raised by :class:`zkdir.store.NoteStore` and :mod:`zkdir.search`.

Everything here derives from :exc:`Error`, so callers that only want to report a failure can catch that.
"""

from typing import Optional


class Error(Exception):
    """Base class for all zkdir errors.

    .. attribute:: message
       :type: str
    """
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(Error):
    """Raised for an unknown note id, alias, or attached file."""
    def __init__(self, message: str, note_id: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message)
        self.note_id = note_id
        self.path = path


class ParseError(Error):
    """Raised when a note reference is neither an alias nor a note id."""
    def __init__(self, message: str, ref: str):
        super().__init__(message)
        self.ref = ref


class AlreadyPopulatedError(Error):
    """Raised when initializing a store in a directory that already has contents."""
    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class DuplicateIdError(Error):
    """Raised if a freshly allocated id is already in the index. This indicates a corrupted index."""
    def __init__(self, message: str, note_id: int):
        super().__init__(message)
        self.note_id = note_id


class CorruptRecordError(Error):
    """Raised when a metadata, index, or alias record cannot be decoded."""
    def __init__(self, message: str, path: Optional[str] = None, cause: BaseException = None):
        super().__init__(message)
        self.path = path
        self.cause = cause


class SourceNotFoundError(Error):
    """Raised by :meth:`zkdir.store.NoteStore.add_file` when the file to attach does not exist."""
    def __init__(self, message: str, path: str, cause: BaseException = None):
        super().__init__(message)
        self.path = path
        self.cause = cause


class SourceUnreadableError(Error):
    """Raised by :meth:`zkdir.store.NoteStore.add_file` when the file to attach cannot be opened."""
    def __init__(self, message: str, path: str, cause: BaseException = None):
        super().__init__(message)
        self.path = path
        self.cause = cause


class NameConflictError(Error):
    """Raised when attaching a file under a name the note already has."""
    def __init__(self, message: str, note_id: int, name: str):
        super().__init__(message)
        self.note_id = note_id
        self.name = name


class IOFailureError(Error):
    """Raised for read, write, copy, or listing failures that have no more specific error."""
    def __init__(self, message: str, path: Optional[str] = None, cause: BaseException = None):
        super().__init__(message)
        self.path = path
        self.cause = cause


class PatternError(Error):
    """Raised when a search expression does not compile."""
    def __init__(self, message: str, pattern: str, cause: BaseException = None):
        super().__init__(message)
        self.pattern = pattern
        self.cause = cause


class LinkError(Error):
    """Raised for a link the graph cannot hold, such as listing note 0 as a subnote."""
    def __init__(self, message: str, parent_id: int, note_id: int):
        super().__init__(message)
        self.parent_id = parent_id
        self.note_id = note_id


class InvalidNameError(Error):
    """Raised when a name for an attached file would place it outside the note's files directory."""
    def __init__(self, message: str, note_id: int, name: str):
        super().__init__(message)
        self.note_id = note_id
        self.name = name
