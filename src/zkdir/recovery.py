"""Rebuilds a store's index from its note directories.

This is used when the index record is missing or unreadable, and by :meth:`zkdir.store.NoteStore.rescan`.
"""

import logging
import os
from typing import Iterable, List

from zkdir.codec import decode_meta, read_record
from zkdir.errors import Error, IOFailureError
from zkdir.layout import Layout
from zkdir.models import NoteMeta, StoreIndex, ROOT_ID

logger = logging.getLogger(__name__)


def list_files(layout: Layout, note_id: int) -> List[str]:
    """Returns the sorted names in a note's attached-files directory.

    Raises :exc:`zkdir.errors.IOFailureError` if the directory cannot be listed.
    """
    path = layout.files_dir(note_id)
    try:
        return sorted(os.listdir(path))
    except OSError as e:
        raise IOFailureError(f'Failed to list files of note {note_id}: {e}', path, e) from e


def reconcile_files(recorded: Iterable[str], present: Iterable[str]) -> List[str]:
    """Returns the recorded names followed by any present names that were not recorded.

    This only ever adds: recorded names that are no longer present are kept.
    """
    result = []
    for name in list(recorded) + list(present):
        if name not in result:
            result.append(name)
    return result


def read_note_meta(layout: Layout, note_id: int) -> NoteMeta:
    """Reads a note's metadata record and reconciles its file list with the files directory.

    May raise :exc:`zkdir.errors.NotFoundError`, :exc:`zkdir.errors.CorruptRecordError`, or
    :exc:`zkdir.errors.IOFailureError`.
    """
    path = layout.metadata_path(note_id)
    meta = decode_meta(read_record(path), path)
    if meta.id != note_id:
        logger.warning('Metadata in %s claims id %d; using %d', path, meta.id, note_id)
        meta.id = note_id
    present = list_files(layout, note_id)
    files = reconcile_files(meta.files, present)
    if len(files) != len(meta.files):
        logger.debug('Note %d: found unrecorded files %s', note_id, files[len(meta.files):])
    meta.files = files
    return meta


def derive(layout: Layout) -> StoreIndex:
    """Builds an index by reading the metadata of every numbered directory in the store root.

    Notes whose metadata cannot be read are left out. The next id is one more than the highest numbered directory
    found, whether or not it could be read, and never less than 1.

    Raises :exc:`zkdir.errors.IOFailureError` only if the root cannot be listed.
    """
    try:
        note_ids = sorted(layout.note_ids())
    except OSError as e:
        raise IOFailureError(f'Failed to list store root {layout.root}: {e}', layout.root, e) from e

    index = StoreIndex(next_id=ROOT_ID + 1)
    for note_id in note_ids:
        index.next_id = max(index.next_id, note_id + 1)
        try:
            index.notes[note_id] = read_note_meta(layout, note_id)
        except Error as e:
            logger.warning('Skipping note %d during recovery: %s', note_id, e.message)
    logger.debug('Recovered %d notes from %s', len(index.notes), layout.root)
    return index
