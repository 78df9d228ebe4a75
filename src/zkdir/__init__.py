"""Keeps a hierarchy of plain-text notes in a directory, one numbered subdirectory per note.

If you installed via ``pip``, run ``zkdir -h`` to get help.

To use the Python API, look at :class:`zkdir.store.NoteStore`
"""
