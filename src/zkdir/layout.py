"""Provides the :class:`Layout` class, which maps notes to paths under a store root."""

import os
import os.path
from typing import Iterator


class Layout:
    """Derives the on-disk paths of a store. Performs no validation of their contents.

    The store root looks like this::

        <root>/state                  index record
        <root>/aliases                alias record
        <root>/<id>/metadata          metadata record for note <id>
        <root>/<id>/body              body text
        <root>/<id>/files/<name>      attached files

    .. attribute:: root
       :type: str
    """
    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    @property
    def state_path(self) -> str:
        return os.path.join(self.root, 'state')

    @property
    def aliases_path(self) -> str:
        return os.path.join(self.root, 'aliases')

    def note_dir(self, note_id: int) -> str:
        return os.path.join(self.root, str(note_id))

    def metadata_path(self, note_id: int) -> str:
        return os.path.join(self.note_dir(note_id), 'metadata')

    def body_path(self, note_id: int) -> str:
        return os.path.join(self.note_dir(note_id), 'body')

    def files_dir(self, note_id: int) -> str:
        return os.path.join(self.note_dir(note_id), 'files')

    @staticmethod
    def is_file_name(name: str) -> bool:
        """True if ``name`` names an entry directly inside a ``files`` directory."""
        if not name or name in ('.', '..'):
            return False
        return os.sep not in name and not (os.altsep and os.altsep in name)

    def file_path(self, note_id: int, name: str) -> str:
        return os.path.join(self.files_dir(note_id), name)

    def make_note_dirs(self, note_id: int) -> None:
        """Creates the note's directory and its empty ``files`` subdirectory."""
        os.makedirs(self.files_dir(note_id), mode=0o700, exist_ok=True)

    def note_ids(self) -> Iterator[int]:
        """Yields the ids of all directories in the root whose names are non-negative integers.

        Raises :exc:`OSError` if the root cannot be listed.
        """
        for entry in os.scandir(self.root):
            if not entry.is_dir():
                continue
            # only canonical decimal names, so "007" is not mistaken for note 7
            if entry.name.isascii() and entry.name.isdigit() and str(int(entry.name)) == entry.name:
                yield int(entry.name)
