"""Provides the :class:`NoteStore` class, the main entry point for working with a store of notes."""

from __future__ import annotations
import copy
import logging
import os
import os.path
import shutil
from typing import Dict, Iterable, Iterator, List, Optional

from zkdir import search as _search
from zkdir.codec import decode_aliases, decode_index, encode_aliases, encode_index, encode_meta, read_record,\
    write_record
from zkdir.errors import AlreadyPopulatedError, DuplicateIdError, Error, InvalidNameError, IOFailureError,\
    LinkError, NameConflictError, NotFoundError, ParseError, SourceNotFoundError, SourceUnreadableError
from zkdir.layout import Layout
from zkdir.models import Note, NoteMeta, SearchResult, StoreIndex, ROOT_BODY, ROOT_ID, title_of
from zkdir.recovery import derive, read_note_meta

logger = logging.getLogger(__name__)


class NoteStore:
    """Owns the index of a store of notes and keeps it in step with the note directories.

    Get an instance from :meth:`open` after creating the store once with :meth:`init`. Call :meth:`close` when
    you're done with it, or use it as a context manager, so the index is written back.

    Every method that changes a note writes that note's metadata immediately. The index record itself is written
    by :meth:`create_note` and :meth:`close`.

    Instances are not thread-safe. Use one instance from one thread at a time, and don't change notes while
    iterating over the results of :meth:`search`.

    .. attribute:: layout
       :type: zkdir.layout.Layout

    .. attribute:: index
       :type: zkdir.models.StoreIndex
    """

    @classmethod
    def init(cls, root: str) -> None:
        """Creates a new store at ``root``, containing just the top-level note 0.

        Raises :exc:`zkdir.errors.AlreadyPopulatedError` if ``root`` exists and is not empty.
        """
        layout = Layout(root)
        if os.path.isdir(layout.root):
            try:
                contents = os.listdir(layout.root)
            except OSError as e:
                raise IOFailureError(f'Failed to list {layout.root}: {e}', layout.root, e) from e
            if contents:
                raise AlreadyPopulatedError(f'Specified root already contains files or directories: {layout.root}',
                                            layout.root)
        try:
            os.makedirs(layout.root, exist_ok=True)
        except OSError as e:
            raise IOFailureError(f'Failed to create {layout.root}: {e}', layout.root, e) from e

        store = cls(layout, StoreIndex(next_id=ROOT_ID + 1), {})
        store._make_note(ROOT_ID, ROOT_ID, ROOT_BODY)
        store._write_index()
        logger.debug('Initialized store at %s', layout.root)

    @classmethod
    def open(cls, root: str) -> NoteStore:
        """Loads the store at ``root``.

        If the index record is missing or unreadable, the index is rebuilt from the note directories instead
        (see :func:`zkdir.recovery.derive`), which raises :exc:`zkdir.errors.IOFailureError` if ``root`` cannot
        be listed.
        """
        layout = Layout(root)
        try:
            index = decode_index(read_record(layout.state_path), layout.state_path)
        except Error as e:
            logger.warning('Could not load index (%s); rebuilding it from %s', e.message, layout.root)
            index = derive(layout)
        try:
            aliases = decode_aliases(read_record(layout.aliases_path), layout.aliases_path)
        except NotFoundError:
            aliases = {}
        except Error as e:
            logger.warning('Could not load aliases (%s); starting with none', e.message)
            aliases = {}
        return cls(layout, index, aliases)

    def __init__(self, layout: Layout, index: StoreIndex, aliases: Dict[str, int]):
        self.layout = layout
        self.index = index
        if self.index.notes is None:
            self.index.notes = {}
        self._aliases = aliases if aliases is not None else {}

    def close(self) -> None:
        """Writes the index and aliases. The instance can still be used afterward."""
        self._write_index()
        self._write_aliases()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _write_index(self) -> None:
        write_record(self.layout.state_path, encode_index(self.index))

    def _write_aliases(self) -> None:
        write_record(self.layout.aliases_path, encode_aliases(self._aliases))

    def _write_meta(self, meta: NoteMeta) -> None:
        write_record(self.layout.metadata_path(meta.id), encode_meta(meta))

    def _write_body(self, note_id: int, body: str) -> None:
        path = self.layout.body_path(note_id)
        try:
            with open(path, 'w', encoding='utf-8', newline='') as file:
                file.write(body)
        except OSError as e:
            raise IOFailureError(f'Failed to write body of note {note_id}: {e}', path, e) from e

    def _meta(self, note_id: int) -> NoteMeta:
        meta = self.index.notes.get(note_id)
        if meta is None:
            raise NotFoundError(f'Note {note_id} not found', note_id=note_id)
        return meta

    def get_meta(self, note_id: int) -> NoteMeta:
        """Returns a copy of the note's metadata from the index, without reading anything from disk.

        Raises :exc:`zkdir.errors.NotFoundError` if there is no such note.
        """
        return self._meta(note_id).copy()

    def metadata_dump(self) -> Dict[int, NoteMeta]:
        """Returns a copy of the metadata for every note, keyed by id. Useful for walking the whole tree."""
        return copy.deepcopy(self.index.notes)

    def get_note(self, note_id: int) -> Note:
        """Reads the note from disk, including its body, and updates the index to match.

        Files found in the note's files directory are added to its metadata, the title is taken from the body
        again, and the refreshed metadata is written back. This picks up changes made outside zkdir, such as
        editing the file from :meth:`get_body_path`.

        Raises :exc:`zkdir.errors.NotFoundError` if there is no such note, or
        :exc:`zkdir.errors.IOFailureError` / :exc:`zkdir.errors.CorruptRecordError` if its files can't be read.
        """
        self._meta(note_id)
        meta = read_note_meta(self.layout, note_id)
        path = self.layout.body_path(note_id)
        try:
            with open(path, 'r', encoding='utf-8', newline='') as file:
                body = file.read()
        except OSError as e:
            raise IOFailureError(f'Failed to read body of note {note_id}: {e}', path, e) from e
        meta.title = title_of(body)
        self.index.notes[note_id] = meta
        self._write_meta(meta)
        return Note(meta.copy(), body)

    def create_note(self, parent_id: int, body: str) -> int:
        """Creates a note as a subnote of ``parent_id`` and returns its id.

        Raises :exc:`zkdir.errors.NotFoundError` if the parent does not exist.
        """
        self._meta(parent_id)
        note_id = self.index.next_id
        self._make_note(note_id, parent_id, body)
        self.index.next_id += 1
        self._write_index()
        return note_id

    def _make_note(self, note_id: int, parent_id: int, body: str) -> None:
        if note_id in self.index.notes:
            raise DuplicateIdError(f'A note with id {note_id} already exists', note_id)
        meta = NoteMeta(note_id, title=title_of(body), parent=parent_id)
        try:
            self.layout.make_note_dirs(note_id)
        except OSError as e:
            raise IOFailureError(f'Failed to create directory for note {note_id}: {e}',
                                 self.layout.note_dir(note_id), e) from e
        self._write_body(note_id, body)
        self._write_meta(meta)
        if not note_id == ROOT_ID:
            parent = self._meta(parent_id)
            parent.subnotes.append(note_id)
            self._write_meta(parent)
        self.index.notes[note_id] = meta
        logger.debug('Created note %d under %d', note_id, parent_id)

    def update_note(self, note_id: int, body: str) -> None:
        """Replaces the note's body and updates its title to match.

        Raises :exc:`zkdir.errors.NotFoundError` if there is no such note.
        """
        meta = self._meta(note_id)
        self._write_body(note_id, body)
        meta.title = title_of(body)
        self._write_meta(meta)

    def get_body_path(self, note_id: int) -> str:
        """Returns the absolute path of the note's body file, e.g. for opening in an editor.

        Changes made to the file directly are not reflected in the index (including the title) until
        :meth:`get_note` or :meth:`rescan` is called.
        """
        self._meta(note_id)
        return self.layout.body_path(note_id)

    def link_note(self, parent_id: int, note_id: int) -> None:
        """Lists ``note_id`` as a subnote of ``parent_id``, if it isn't already.

        The note's own ``parent`` is not changed, so a note can be listed under several parents.

        Raises :exc:`zkdir.errors.NotFoundError` if either note does not exist, or
        :exc:`zkdir.errors.LinkError` for an attempt to list note 0 as a subnote.
        """
        parent = self._meta(parent_id)
        self._meta(note_id)
        if note_id == ROOT_ID:
            raise LinkError(f'Note {ROOT_ID} cannot be a subnote', parent_id, note_id)
        if note_id in parent.subnotes:
            return
        parent.subnotes.append(note_id)
        self._write_meta(parent)

    def unlink_note(self, parent_id: int, note_id: int) -> None:
        """Removes ``note_id`` from the subnotes of ``parent_id``.

        If ``parent_id`` was the note's recorded parent, the note is re-parented to note 0. It is not added to
        note 0's subnotes, so unless it is listed elsewhere it becomes an orphan. Unlinking a note that isn't
        listed is a no-op.

        Raises :exc:`zkdir.errors.NotFoundError` if the parent does not exist.
        """
        parent = self._meta(parent_id)
        parent.subnotes = [n for n in parent.subnotes if not n == note_id]
        child = self.index.notes.get(note_id)
        if child is not None and child.parent == parent_id and not note_id == ROOT_ID:
            child.parent = ROOT_ID
            self._write_meta(child)
        self._write_meta(parent)

    def get_orphans(self) -> List[NoteMeta]:
        """Returns notes other than note 0 that are not a subnote of any other note.

        The order is unspecified; sort the result if you need a stable order.
        """
        orphans = []
        for note_id, meta in self.index.notes.items():
            if note_id == ROOT_ID:
                continue
            if not any(note_id in other.subnotes for other_id, other in self.index.notes.items()
                       if not other_id == note_id):
                orphans.append(meta.copy())
        return orphans

    def add_file(self, note_id: int, source_path: str, dest_name: str = '') -> None:
        """Copies a file into the note's attached files.

        The copy is named ``dest_name``, or the source's file name if that is empty.

        Raises :exc:`zkdir.errors.NotFoundError` if there is no such note,
        :exc:`zkdir.errors.SourceNotFoundError` or :exc:`zkdir.errors.SourceUnreadableError` if the source
        can't be found or opened, :exc:`zkdir.errors.NameConflictError` if the note already has a file by that
        name, and :exc:`zkdir.errors.InvalidNameError` if the name would place the file outside the note's files
        directory.
        """
        meta = self._meta(note_id)
        if not os.path.exists(source_path):
            raise SourceNotFoundError(f'Cannot find source file {source_path}', source_path)
        name = dest_name or os.path.basename(source_path)
        if not name:
            raise SourceNotFoundError(f'Cannot find base name for {source_path}', source_path)
        if not Layout.is_file_name(name):
            raise InvalidNameError(f'Invalid file name for note {note_id}: {name}', note_id, name)
        if name in meta.files:
            raise NameConflictError(f'File named {name} already exists for note {note_id}', note_id, name)

        files_dir = self.layout.files_dir(note_id)
        if not os.path.isdir(files_dir):
            raise IOFailureError(f'Files directory of note {note_id} is missing: {files_dir}', files_dir)
        dest_path = self.layout.file_path(note_id, name)
        try:
            src = open(source_path, 'rb')
        except OSError as e:
            raise SourceUnreadableError(f'Cannot open source file {source_path}: {e}', source_path, e) from e
        with src:
            try:
                with open(dest_path, 'wb') as dst:
                    shutil.copyfileobj(src, dst)
            except OSError as e:
                raise IOFailureError(f'Problem copying {source_path} to {dest_path}: {e}', dest_path, e) from e
        self.get_note(note_id)

    def remove_file(self, note_id: int, name: str) -> None:
        """Deletes one of the note's attached files.

        Raises :exc:`zkdir.errors.NotFoundError` if there is no such note or file.
        """
        meta = self._meta(note_id)
        path = self._attached_path(note_id, name)
        try:
            os.remove(path)
        except FileNotFoundError as e:
            raise NotFoundError(f'File {name} not found for note {note_id}', note_id=note_id, path=path) from e
        except OSError as e:
            raise IOFailureError(f'Failed to remove {path}: {e}', path, e) from e
        meta.files = [f for f in meta.files if not f == name]
        self._write_meta(meta)

    def get_file_path(self, note_id: int, name: str) -> str:
        """Returns the absolute path of one of the note's attached files.

        Raises :exc:`zkdir.errors.NotFoundError` if there is no such note or file.
        """
        self._meta(note_id)
        path = self._attached_path(note_id, name)
        if not os.path.isfile(path):
            raise NotFoundError(f'File {name} not found for note {note_id}', note_id=note_id, path=path)
        return path

    def _attached_path(self, note_id: int, name: str) -> str:
        # names that leave the files directory can never refer to an attached file
        if not Layout.is_file_name(name):
            raise NotFoundError(f'File {name} not found for note {note_id}', note_id=note_id)
        return self.layout.file_path(note_id, name)

    def rescan(self) -> None:
        """Replaces the index with one rebuilt from the note directories.

        Any changes that were only in memory are lost. Aliases are not affected.
        """
        self.index = derive(self.layout)

    def search(self, pattern: str, scope_ids: Iterable[int] = (),
               max_workers: Optional[int] = None) -> Iterator[SearchResult]:
        """See :func:`zkdir.search.search`."""
        return _search.search(self, pattern, scope_ids, max_workers=max_workers)

    def tree_search(self, pattern: str, root_id: int, max_workers: Optional[int] = None) -> Iterator[SearchResult]:
        """See :func:`zkdir.search.tree_search`."""
        return _search.tree_search(self, pattern, root_id, max_workers=max_workers)

    def aliases(self) -> Dict[str, int]:
        """Returns a copy of the alias map."""
        return dict(self._aliases)

    def add_alias(self, note_id: int, name: str) -> None:
        """Makes ``name`` refer to the note, replacing any existing alias with that name.

        Raises :exc:`zkdir.errors.NotFoundError` if there is no such note.
        """
        self._meta(note_id)
        self._aliases[name] = note_id
        self._write_aliases()

    def remove_alias(self, name: str) -> None:
        """Deletes the alias, if it exists."""
        if self._aliases.pop(name, None) is not None:
            self._write_aliases()

    def resolve(self, ref: str) -> int:
        """Returns the note id for an alias or a decimal note id.

        Aliases take precedence. Raises :exc:`zkdir.errors.ParseError` if ``ref`` is neither an alias nor an
        integer, or :exc:`zkdir.errors.NotFoundError` if it is an integer but there is no such note.
        """
        if ref in self._aliases:
            return self._aliases[ref]
        try:
            note_id = int(ref)
        except ValueError as e:
            raise ParseError(f'{ref!r} is not an alias or note id', ref) from e
        if note_id < 0:
            raise ParseError(f'{ref!r} is not an alias or note id', ref)
        self._meta(note_id)
        return note_id
