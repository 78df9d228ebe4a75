from pathlib import Path
import pytest
from zkdir.codec import decode_index, encode_meta
from zkdir.errors import IOFailureError
from zkdir.layout import Layout
from zkdir.models import NoteMeta
from zkdir.recovery import derive, reconcile_files


def test_reconcile_files():
    assert reconcile_files([], []) == []
    assert reconcile_files(['b'], ['a', 'b', 'c']) == ['b', 'a', 'c']
    # recorded files that are gone from disk are kept
    assert reconcile_files(['gone', 'a'], ['a']) == ['gone', 'a']
    assert reconcile_files(['a', 'a'], ['a']) == ['a']


def test_derive_matches_persisted_index(store):
    one = store.create_note(0, 'One\n')
    two = store.create_note(one, 'Two\n')
    store.link_note(0, two)
    store.update_note(one, 'Renamed\nbody')
    store.close()
    persisted = decode_index(Path('/zk/state').read_bytes())
    derived = derive(store.layout)
    assert derived == persisted
    assert derived.next_id == 3


def test_derive_skips_unreadable_notes(store):
    store.create_note(0, 'One\n')
    store.create_note(0, 'Two\n')
    store.create_note(0, 'Three\n')
    Path('/zk/2/metadata').write_text('{"Id": 2, "Title": "Tw')
    Path('/zk/3/metadata').unlink()
    index = derive(store.layout)
    assert sorted(index.notes) == [0, 1]
    # unreadable directories still count, so their ids are not handed out again
    assert index.next_id == 4


def test_derive_next_id_from_highest_directory(fs):
    layout = Layout('/zk')
    for note_id in [0, 4, 9]:
        layout.make_note_dirs(note_id)
        Path(layout.metadata_path(note_id)).write_bytes(encode_meta(NoteMeta(note_id)))
    Path('/zk/12').mkdir()
    Path('/zk/scratch').mkdir()
    index = derive(layout)
    assert sorted(index.notes) == [0, 4, 9]
    assert index.next_id == 13


def test_derive_empty_root(fs):
    Path('/zk').mkdir()
    index = derive(Layout('/zk'))
    assert index.notes == {}
    assert index.next_id == 1


def test_derive_missing_root(fs):
    with pytest.raises(IOFailureError):
        derive(Layout('/nowhere'))


def test_derive_adds_unrecorded_files(store, fs):
    note_id = store.create_note(0, 'Files\n')
    meta = NoteMeta(note_id, 'Files', 0, [], ['recorded-but-gone.txt'])
    Path(store.layout.metadata_path(note_id)).write_bytes(encode_meta(meta))
    fs.create_file('/zk/1/files/b.txt')
    fs.create_file('/zk/1/files/a.txt')
    index = derive(store.layout)
    assert index.notes[note_id].files == ['recorded-but-gone.txt', 'a.txt', 'b.txt']


def test_derive_uses_directory_id(store):
    store.create_note(0, 'One\n')
    Path('/zk/1/metadata').write_bytes(encode_meta(NoteMeta(42, 'One')))
    index = derive(store.layout)
    assert index.notes[1].id == 1
    assert 42 not in index.notes


def test_derive_skips_note_without_files_dir(store):
    store.create_note(0, 'One\n')
    Path('/zk/1/files').rmdir()
    index = derive(store.layout)
    assert 1 not in index.notes
    assert 0 in index.notes
