"""Searches note bodies for a regular expression, one worker thread per note.

Results for a single note arrive together and in line order. Which note's results arrive first depends on which
worker finishes first.

Workers are started as soon as :func:`search` is called and always run to completion, even if the caller stops
iterating early; there is no way to cancel them. The store's index must not be modified while a search is running.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed, Future
import logging
import re
from typing import Dict, Iterable, Iterator, List, Optional, TYPE_CHECKING

from zkdir.errors import IOFailureError, NotFoundError, PatternError
from zkdir.models import NoteMeta, SearchResult

if TYPE_CHECKING:
    from zkdir.store import NoteStore

logger = logging.getLogger(__name__)


def compile_pattern(pattern: str) -> re.Pattern:
    """Compiles the expression, raising :exc:`zkdir.errors.PatternError` if it is invalid."""
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError(f'Invalid search pattern {pattern!r}: {e}', pattern, e) from e


def grep_body(note_id: int, body_path: str, regex: re.Pattern) -> List[SearchResult]:
    """Returns a result for each line of the body file that the regex matches.

    If the file cannot be read, the last result carries the error instead of a line.
    """
    results = []
    try:
        with open(body_path, 'r', encoding='utf-8', errors='replace', newline='\n') as file:
            for line in file:
                line = line[:-1] if line.endswith('\n') else line
                if regex.search(line):
                    results.append(SearchResult(note_id, line=line))
    except OSError as e:
        error = IOFailureError(f'Failed to read body of note {note_id}: {e}', body_path, e)
        results.append(SearchResult(note_id, error=error))
    return results


def subtree_ids(notes: Dict[int, NoteMeta], root_id: int) -> List[int]:
    """Returns the root and everything below it via subnotes, depth first, parents before children.

    A note listed under two parents in the subtree appears twice. A note is never re-entered from below itself,
    so cycles created with :meth:`zkdir.store.NoteStore.link_note` do not loop forever.
    """
    result = []
    stack = [(root_id, ())]
    while stack:
        note_id, ancestors = stack.pop()
        meta = notes.get(note_id)
        if meta is None:
            continue
        result.append(note_id)
        path = ancestors + (note_id,)
        for child in reversed(meta.subnotes):
            if child not in path:
                stack.append((child, path))
    return result


def _collect(futures: List[Future]) -> Iterator[SearchResult]:
    for future in as_completed(futures):
        yield from future.result()


def search(store: 'NoteStore', pattern: str, scope_ids: Iterable[int] = (),
           max_workers: Optional[int] = None) -> Iterator[SearchResult]:
    """Searches the bodies of the given notes, or of every note if ``scope_ids`` is empty.

    Ids that are not in the store's index are ignored. Raises :exc:`zkdir.errors.PatternError` before starting
    any work if the pattern does not compile. Failures to read a note are reported as a :class:`SearchResult`
    with :attr:`error` set, and do not affect the other notes.
    """
    regex = compile_pattern(pattern)
    notes = store.index.notes
    scope_ids = list(scope_ids)
    if not scope_ids:
        scope_ids = list(notes)
    scope = [i for i in scope_ids if i in notes]

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='zkdir-search')
    futures = [executor.submit(grep_body, note_id, store.layout.body_path(note_id), regex) for note_id in scope]
    # workers keep running after this; it only prevents new submissions
    executor.shutdown(wait=False)
    logger.debug('Searching %d notes for %r', len(futures), pattern)
    return _collect(futures)


def tree_search(store: 'NoteStore', pattern: str, root_id: int,
                max_workers: Optional[int] = None) -> Iterator[SearchResult]:
    """Searches the given note and every note below it. See :func:`subtree_ids` and :func:`search`.

    Raises :exc:`zkdir.errors.NotFoundError` if the root note does not exist.
    """
    if root_id not in store.index.notes:
        raise NotFoundError(f'Note {root_id} not found', note_id=root_id)
    return search(store, pattern, subtree_ids(store.index.notes, root_id), max_workers=max_workers)
