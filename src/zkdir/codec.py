"""Reads and writes the JSON records a store keeps on disk.

There are three kinds of record: one per note (:class:`zkdir.models.NoteMeta`), one for the whole
:class:`zkdir.models.StoreIndex`, and one for the alias map. Field names match those written by the ``zk`` tool,
so stores it created can be opened directly.
"""

import json
import os
from typing import Dict, Optional

from zkdir.errors import CorruptRecordError, IOFailureError, NotFoundError
from zkdir.models import NoteMeta, StoreIndex


def _corrupt(path: Optional[str], problem: str, cause: BaseException = None) -> CorruptRecordError:
    where = f' in {path}' if path else ''
    return CorruptRecordError(f'Corrupt record{where}: {problem}', path, cause)


def _load(data: bytes, path: Optional[str]):
    if not data.strip():
        raise _corrupt(path, 'record is empty')
    try:
        return json.loads(data)
    except ValueError as e:
        raise _corrupt(path, str(e), e) from e


def _is_int(val) -> bool:
    return isinstance(val, int) and not isinstance(val, bool)


def _id_field(obj: dict, key: str, path: Optional[str]) -> int:
    val = obj.get(key, 0)
    if not _is_int(val) or val < 0:
        raise _corrupt(path, f'{key} must be a non-negative integer, got {val!r}')
    return val


def _list_field(obj: dict, key: str, item_check, path: Optional[str]) -> list:
    # null and absent both mean empty
    val = obj.get(key)
    if val is None:
        return []
    if not isinstance(val, list) or not all(item_check(v) for v in val):
        raise _corrupt(path, f'{key} has the wrong type: {val!r}')
    return list(val)


def _meta_from_obj(obj, path: Optional[str]) -> NoteMeta:
    if not isinstance(obj, dict):
        raise _corrupt(path, 'note metadata must be an object')
    title = obj.get('Title')
    if title is None:
        title = ''
    if not isinstance(title, str):
        raise _corrupt(path, f'Title must be a string, got {title!r}')
    return NoteMeta(
        id=_id_field(obj, 'Id', path),
        title=title,
        parent=_id_field(obj, 'Parent', path),
        subnotes=_list_field(obj, 'Subnotes', lambda v: _is_int(v) and v >= 0, path),
        files=_list_field(obj, 'Files', lambda v: isinstance(v, str), path))


def _meta_to_obj(meta: NoteMeta) -> dict:
    return {
        'Id': meta.id,
        'Title': meta.title,
        'Subnotes': list(meta.subnotes),
        'Files': list(meta.files),
        'Parent': meta.parent,
    }


def _dump(obj) -> bytes:
    return (json.dumps(obj, ensure_ascii=False) + '\n').encode('utf-8')


def encode_meta(meta: NoteMeta) -> bytes:
    return _dump(_meta_to_obj(meta))


def decode_meta(data: bytes, path: str = None) -> NoteMeta:
    """Parses a note's metadata record.

    Raises :exc:`zkdir.errors.CorruptRecordError` if the data is empty, is not valid JSON, or has fields of the
    wrong type. Missing fields take their defaults.
    """
    return _meta_from_obj(_load(data, path), path)


def encode_index(index: StoreIndex) -> bytes:
    return _dump({
        'NextNoteId': index.next_id,
        'Notes': {str(k): _meta_to_obj(v) for k, v in sorted(index.notes.items())},
    })


def decode_index(data: bytes, path: str = None) -> StoreIndex:
    """Parses the whole-store index record. Raises :exc:`zkdir.errors.CorruptRecordError` like :func:`decode_meta`."""
    obj = _load(data, path)
    if not isinstance(obj, dict):
        raise _corrupt(path, 'index must be an object')
    next_id = obj.get('NextNoteId')
    if next_id is not None and (not _is_int(next_id) or next_id < 0):
        raise _corrupt(path, f'NextNoteId must be a non-negative integer, got {next_id!r}')
    notes_obj = obj.get('Notes')
    if notes_obj is None:
        notes_obj = {}
    if not isinstance(notes_obj, dict):
        raise _corrupt(path, 'Notes must be an object')
    notes = {}
    for key, val in notes_obj.items():
        try:
            note_id = int(key)
        except ValueError as e:
            raise _corrupt(path, f'note key {key!r} is not an integer', e) from e
        if note_id < 0:
            raise _corrupt(path, f'note key {key!r} is negative')
        notes[note_id] = _meta_from_obj(val, path)
    # ids are handed out from next_id, so it must be above every existing note
    lowest = max(notes) + 1 if notes else 1
    if next_id is None:
        next_id = lowest
    elif next_id < lowest:
        raise _corrupt(path, f'NextNoteId {next_id} would reuse the id of an existing note')
    return StoreIndex(next_id=next_id, notes=notes)


def encode_aliases(aliases: Dict[str, int]) -> bytes:
    return _dump(dict(sorted(aliases.items())))


def decode_aliases(data: bytes, path: str = None) -> Dict[str, int]:
    obj = _load(data, path)
    if not isinstance(obj, dict) or not all(_is_int(v) and v >= 0 for v in obj.values()):
        raise _corrupt(path, 'aliases must be an object mapping names to note ids')
    return dict(obj)


def read_record(path: str) -> bytes:
    """Returns the contents of a record file.

    Raises :exc:`zkdir.errors.NotFoundError` if it does not exist, or :exc:`zkdir.errors.IOFailureError` if it
    cannot be read.
    """
    try:
        with open(path, 'rb') as file:
            return file.read()
    except FileNotFoundError as e:
        raise NotFoundError(f'Record not found: {path}', path=path) from e
    except OSError as e:
        raise IOFailureError(f'Failed to read {path}: {e}', path, e) from e


def write_record(path: str, data: bytes) -> None:
    """Replaces the contents of a record file, creating it if necessary.

    The file is truncated and rewritten in place, so a failure partway through can leave it incomplete.
    Raises :exc:`zkdir.errors.IOFailureError` on failure.
    """
    try:
        with open(path, 'wb') as file:
            file.write(data)
            file.flush()
            os.fsync(file.fileno())
    except OSError as e:
        raise IOFailureError(f'Failed to write {path}: {e}', path, e) from e
