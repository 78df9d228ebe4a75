"""Command-line interface for zkdir."""


import argparse
import json
import logging
import shlex
import subprocess
import sys
from typing import Dict, Optional, Tuple
from terminaltables import AsciiTable
from zkdir.conf import ZkConf
from zkdir.errors import Error
from zkdir.models import NoteMeta, ROOT_ID
from zkdir.store import NoteStore


def _print_files(meta: NoteMeta) -> None:
    print(f'Files for [{meta.id}] {meta.title}:')
    for name in meta.files:
        print(f'\t{name}')


def _init(args, store: Optional[NoteStore], conf: ZkConf) -> int:
    NoteStore.init(conf.root)
    print(f'Initialized {conf.root}')
    return 0


def _new(args, store: NoteStore, conf: ZkConf) -> int:
    parent = store.resolve(args.parent[0])
    body = args.body if args.body is not None else sys.stdin.read()
    note_id = store.create_note(parent, body)
    print(note_id)
    return 0


def _show(args, store: NoteStore, conf: ZkConf) -> int:
    note = store.get_note(store.resolve(args.note[0]))
    subnotes = sorted((store.get_meta(n) for n in note.subnotes if n in store.index.notes),
                      key=lambda m: m.id)
    if args.json:
        print(json.dumps({'note': note.meta.as_json(), 'subnotes': [m.as_json() for m in subnotes]}))
    else:
        print(f'{note.id} {note.title}')
        for meta in subnotes:
            print(f'\t{meta.id} {meta.title}')
    return 0


def _print(args, store: NoteStore, conf: ZkConf) -> int:
    note = store.get_note(store.resolve(args.note[0]))
    sys.stdout.write(note.body)
    return 0


def _edit(args, store: NoteStore, conf: ZkConf) -> int:
    note_id = store.resolve(args.note[0])
    path = store.get_body_path(note_id)
    status = subprocess.call(shlex.split(conf.editor_command()) + [path])
    store.get_note(note_id)
    return status


def _print_tree(notes: Dict[int, NoteMeta], note_id: int, depth: int, ancestors: Tuple[int, ...]) -> None:
    meta = notes.get(note_id)
    if meta is None:
        return
    print('\t' * depth + f'{meta.id} {meta.title}')
    path = ancestors + (note_id,)
    for child in meta.subnotes:
        if child not in path:
            _print_tree(notes, child, depth + 1, path)


def _tree(args, store: NoteStore, conf: ZkConf) -> int:
    root = store.resolve(args.note) if args.note else ROOT_ID
    store.get_meta(root)
    _print_tree(store.metadata_dump(), root, 0, ())
    return 0


def _link(args, store: NoteStore, conf: ZkConf) -> int:
    store.link_note(store.resolve(args.parent[0]), store.resolve(args.note[0]))
    return 0


def _unlink(args, store: NoteStore, conf: ZkConf) -> int:
    store.unlink_note(store.resolve(args.parent[0]), store.resolve(args.note[0]))
    return 0


def _addfile(args, store: NoteStore, conf: ZkConf) -> int:
    note_id = store.resolve(args.note[0])
    store.add_file(note_id, args.path[0], args.name[0] if args.name else '')
    _print_files(store.get_meta(note_id))
    return 0


def _rmfile(args, store: NoteStore, conf: ZkConf) -> int:
    store.remove_file(store.resolve(args.note[0]), args.name[0])
    return 0


def _ls(args, store: NoteStore, conf: ZkConf) -> int:
    note = store.get_note(store.resolve(args.note[0]))
    if args.json:
        print(json.dumps([store.get_file_path(note.id, name) for name in note.files]))
    else:
        _print_files(note.meta)
    return 0


def _orphans(args, store: NoteStore, conf: ZkConf) -> int:
    orphans = sorted(store.get_orphans(), key=lambda m: m.id)
    if args.json:
        print(json.dumps([m.as_json() for m in orphans]))
    else:
        data = [('Id', 'Title')] + [(m.id, m.title) for m in orphans]
        table = AsciiTable(data)
        table.justify_columns[0] = 'right'
        print(table.table)
    return 0


def _grep(args, store: NoteStore, conf: ZkConf) -> int:
    if args.tree:
        results = store.tree_search(args.pattern[0], store.resolve(args.tree[0]), max_workers=conf.search_workers)
    else:
        results = store.search(args.pattern[0], max_workers=conf.search_workers)
    for result in results:
        if result.error:
            print(f'{result.note_id}: {result.error}', file=sys.stderr)
        elif args.json:
            print(json.dumps(result.as_json()))
        else:
            print(f'{result.note_id}: {result.line}')
    return 0


def _rescan(args, store: NoteStore, conf: ZkConf) -> int:
    store.rescan()
    print(f'Found {len(store.index.notes)} notes')
    return 0


def _alias(args, store: NoteStore, conf: ZkConf) -> int:
    store.add_alias(store.resolve(args.note[0]), args.name[0])
    return 0


def _unalias(args, store: NoteStore, conf: ZkConf) -> int:
    store.remove_alias(args.name[0])
    return 0


def _aliases(args, store: NoteStore, conf: ZkConf) -> int:
    aliases = store.aliases()
    if args.json:
        print(json.dumps(aliases))
    else:
        data = [('Alias', 'Id')] + [(name, aliases[name]) for name in sorted(aliases)]
        table = AsciiTable(data)
        table.justify_columns[1] = 'right'
        print(table.table)
    return 0


def argparser() -> argparse.ArgumentParser:
    note_help = 'Note id or alias.'

    parser = argparse.ArgumentParser()
    parser.set_defaults(func=None)
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debugging details to stderr.')

    subs = parser.add_subparsers(title='Commands')

    p_init = subs.add_parser('init', help='Create a new, empty store at the configured root.')
    p_init.set_defaults(func=_init)

    p_new = subs.add_parser('new', help='Create a note under the given parent and print its id.')
    p_new.add_argument('parent', nargs=1, help=note_help)
    p_new.add_argument('body', nargs='?',
                       help='Text of the note; the first line is its title. Read from stdin if omitted.')
    p_new.set_defaults(func=_new)

    p_show = subs.add_parser('show', help='Show a note\'s title and its subnotes.')
    p_show.add_argument('note', nargs=1, help=note_help)
    p_show.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_show.set_defaults(func=_show)

    p_print = subs.add_parser('print', help='Print the body of a note.')
    p_print.add_argument('note', nargs=1, help=note_help)
    p_print.set_defaults(func=_print)

    p_edit = subs.add_parser('edit', help='Open a note in your editor (conf.editor, $EDITOR, or vim).')
    p_edit.add_argument('note', nargs=1, help=note_help)
    p_edit.set_defaults(func=_edit)

    p_tree = subs.add_parser('tree', help='Print the tree of subnotes below a note (note 0 by default).')
    p_tree.add_argument('note', nargs='?', help=note_help)
    p_tree.set_defaults(func=_tree)

    p_link = subs.add_parser('link', help='List a note as a subnote of another note, in addition to any '
                                          'existing parents.')
    p_link.add_argument('parent', nargs=1, help=note_help)
    p_link.add_argument('note', nargs=1, help=note_help)
    p_link.set_defaults(func=_link)

    p_unlink = subs.add_parser('unlink', help='Remove a note from another note\'s subnotes.')
    p_unlink.add_argument('parent', nargs=1, help=note_help)
    p_unlink.add_argument('note', nargs=1, help=note_help)
    p_unlink.set_defaults(func=_unlink)

    p_addfile = subs.add_parser('addfile', help='Copy a file into a note\'s attached files.')
    p_addfile.add_argument('note', nargs=1, help=note_help)
    p_addfile.add_argument('path', nargs=1, help='File to copy.')
    p_addfile.add_argument('-n', '--name', nargs=1, help='Name to give the copy. Defaults to the file\'s name.')
    p_addfile.set_defaults(func=_addfile)

    p_rmfile = subs.add_parser('rmfile', help='Delete one of a note\'s attached files.')
    p_rmfile.add_argument('note', nargs=1, help=note_help)
    p_rmfile.add_argument('name', nargs=1)
    p_rmfile.set_defaults(func=_rmfile)

    p_ls = subs.add_parser('ls', help='List a note\'s attached files.')
    p_ls.add_argument('note', nargs=1, help=note_help)
    p_ls.add_argument('-j', '--json', action='store_true', help='Output the files\' paths as a JSON array.')
    p_ls.set_defaults(func=_ls)

    p_orphans = subs.add_parser('orphans', help='List notes that are not a subnote of any other note.')
    p_orphans.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_orphans.set_defaults(func=_orphans)

    p_grep = subs.add_parser('grep', help='Search note bodies for a Python regular expression. Each matching line '
                                          'is printed after the id of its note.')
    p_grep.add_argument('pattern', nargs=1)
    p_grep.add_argument('-t', '--tree', nargs=1, help='Only search this note and the notes below it.')
    p_grep.add_argument('-j', '--json', action='store_true', help='Output one JSON object per line.')
    p_grep.set_defaults(func=_grep)

    p_rescan = subs.add_parser('rescan', help='Rebuild the index from the note directories. Use this if you have '
                                              'changed the directories by hand.')
    p_rescan.set_defaults(func=_rescan)

    p_alias = subs.add_parser('alias', help='Give a note a name that can be used in place of its id.')
    p_alias.add_argument('note', nargs=1, help=note_help)
    p_alias.add_argument('name', nargs=1)
    p_alias.set_defaults(func=_alias)

    p_unalias = subs.add_parser('unalias', help='Delete an alias.')
    p_unalias.add_argument('name', nargs=1)
    p_unalias.set_defaults(func=_unalias)

    p_aliases = subs.add_parser('aliases', help='List aliases.')
    p_aliases.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_aliases.set_defaults(func=_aliases)

    return parser


def main(args=None) -> int:
    """Runs the tool and returns its exit code.

    args may be an array of string command-line arguments; if absent,
    the process's arguments are used.
    """
    parser = argparser()
    args = parser.parse_args(args)
    if not args.func:
        parser.print_help()
        return 1
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    try:
        conf = ZkConf.for_user().standardize()
        if args.func is _init:
            return _init(args, None, conf)
        with conf.instantiate() as store:
            return args.func(args, store, conf)
    except Error as e:
        print(f'error: {e.message}', file=sys.stderr)
        return 1
