import io
import json
import os.path
from pathlib import Path
from zkdir import cli


def zk_setup(fs, init=True):
    fs.create_file(os.path.expanduser('~/.zkdir.conf.py'), contents="""
from zkdir.conf import *
conf = ZkConf(root='/zk', editor='fake-editor --wait')
""")
    if init:
        assert cli.main(['init']) == 0


def test_no_command(fs, capsys):
    assert cli.main([]) == 1
    out, err = capsys.readouterr()
    assert 'usage' in out


def test_init(fs, capsys):
    zk_setup(fs, init=False)
    assert cli.main(['init']) == 0
    out, err = capsys.readouterr()
    assert out == 'Initialized /zk\n'
    assert Path('/zk/0/body').read_text() == 'Top Level\n'
    assert cli.main(['init']) == 1
    out, err = capsys.readouterr()
    assert err.startswith('error: Specified root already contains')


def test_new_and_show(fs, capsys):
    zk_setup(fs)
    capsys.readouterr()
    assert cli.main(['new', '0', 'Groceries\nmilk\n']) == 0
    assert cli.main(['new', '0', 'Books\n']) == 0
    out, err = capsys.readouterr()
    assert out == '1\n2\n'
    assert cli.main(['show', '0']) == 0
    out, err = capsys.readouterr()
    assert out == '0 Top Level\n\t1 Groceries\n\t2 Books\n'
    assert cli.main(['show', '-j', '1']) == 0
    out, err = capsys.readouterr()
    assert json.loads(out) == {
        'note': {'id': 1, 'title': 'Groceries', 'parent': 0, 'subnotes': [], 'files': []},
        'subnotes': [],
    }


def test_new_from_stdin(fs, capsys, monkeypatch):
    zk_setup(fs)
    monkeypatch.setattr('sys.stdin', io.StringIO('From stdin\nbody\n'))
    assert cli.main(['new', '0']) == 0
    capsys.readouterr()
    assert cli.main(['print', '1']) == 0
    out, err = capsys.readouterr()
    assert out == 'From stdin\nbody\n'


def test_tree_link_unlink(fs, capsys):
    zk_setup(fs)
    cli.main(['new', '0', 'One'])
    cli.main(['new', '1', 'Two'])
    cli.main(['new', '0', 'Three'])
    assert cli.main(['link', '3', '2']) == 0
    capsys.readouterr()
    assert cli.main(['tree']) == 0
    out, err = capsys.readouterr()
    assert out == '0 Top Level\n\t1 One\n\t\t2 Two\n\t3 Three\n\t\t2 Two\n'
    assert cli.main(['unlink', '1', '2']) == 0
    assert cli.main(['tree', '1']) == 0
    out, err = capsys.readouterr()
    assert out == '1 One\n'


def test_orphans(fs, capsys):
    zk_setup(fs)
    cli.main(['new', '0', 'One'])
    cli.main(['new', '1', 'Two'])
    cli.main(['unlink', '1', '2'])
    capsys.readouterr()
    assert cli.main(['orphans', '-j']) == 0
    out, err = capsys.readouterr()
    assert json.loads(out) == [{'id': 2, 'title': 'Two', 'parent': 0, 'subnotes': [], 'files': []}]
    assert cli.main(['orphans']) == 0
    out, err = capsys.readouterr()
    assert 'Title' in out
    assert 'Two' in out
    assert 'One' not in out


def test_files(fs, capsys):
    zk_setup(fs)
    fs.create_file('/tmp/list.txt', contents='milk')
    cli.main(['new', '0', 'Groceries'])
    capsys.readouterr()
    assert cli.main(['addfile', '1', '/tmp/list.txt']) == 0
    out, err = capsys.readouterr()
    assert out == 'Files for [1] Groceries:\n\tlist.txt\n'
    assert cli.main(['addfile', '1', '/tmp/list.txt', '-n', 'copy.txt']) == 0
    capsys.readouterr()
    assert cli.main(['ls', '-j', '1']) == 0
    out, err = capsys.readouterr()
    assert json.loads(out) == ['/zk/1/files/list.txt', '/zk/1/files/copy.txt']
    assert cli.main(['rmfile', '1', 'list.txt']) == 0
    assert cli.main(['ls', '1']) == 0
    out, err = capsys.readouterr()
    assert out == 'Files for [1] Groceries:\n\tcopy.txt\n'
    assert cli.main(['addfile', '1', '/tmp/list.txt', '-n', 'copy.txt']) == 1
    out, err = capsys.readouterr()
    assert err == 'error: File named copy.txt already exists for note 1\n'


def test_grep(fs, capsys):
    zk_setup(fs)
    cli.main(['new', '0', 'Groceries\nmilk\neggs\n'])
    cli.main(['new', '0', 'Recipes\nuse the milk\n'])
    cli.main(['new', '1', 'Dairy\nmilk, butter\n'])
    capsys.readouterr()
    assert cli.main(['grep', 'milk']) == 0
    out, err = capsys.readouterr()
    assert sorted(out.splitlines()) == ['1: milk', '2: use the milk', '3: milk, butter']
    assert cli.main(['grep', '-t', '1', 'milk']) == 0
    out, err = capsys.readouterr()
    assert sorted(out.splitlines()) == ['1: milk', '3: milk, butter']
    assert cli.main(['grep', '-j', '-t', '3', 'butter']) == 0
    out, err = capsys.readouterr()
    assert json.loads(out) == {'note_id': 3, 'line': 'milk, butter', 'error': None}
    assert cli.main(['grep', '(']) == 1
    out, err = capsys.readouterr()
    assert err.startswith('error: Invalid search pattern')


def test_aliases(fs, capsys):
    zk_setup(fs)
    cli.main(['new', '0', 'Groceries'])
    assert cli.main(['alias', '1', 'groceries']) == 0
    capsys.readouterr()
    assert cli.main(['show', 'groceries']) == 0
    out, err = capsys.readouterr()
    assert out == '1 Groceries\n'
    assert cli.main(['aliases', '-j']) == 0
    out, err = capsys.readouterr()
    assert json.loads(out) == {'groceries': 1}
    assert cli.main(['aliases']) == 0
    out, err = capsys.readouterr()
    assert 'groceries' in out
    assert cli.main(['unalias', 'groceries']) == 0
    assert cli.main(['show', 'groceries']) == 1
    out, err = capsys.readouterr()
    assert err == "error: 'groceries' is not an alias or note id\n"


def test_edit(fs, capsys, monkeypatch):
    zk_setup(fs)
    cli.main(['new', '0', 'Before'])
    calls = []

    def fake_call(command):
        calls.append(command)
        Path(command[-1]).write_text('After\nedited')
        return 0

    monkeypatch.setattr('zkdir.cli.subprocess.call', fake_call)
    assert cli.main(['edit', '1']) == 0
    assert calls == [['fake-editor', '--wait', '/zk/1/body']]
    capsys.readouterr()
    assert cli.main(['show', '0']) == 0
    out, err = capsys.readouterr()
    assert out == '0 Top Level\n\t1 After\n'


def test_rescan(fs, capsys):
    zk_setup(fs)
    cli.main(['new', '0', 'One'])
    Path('/zk/state').write_text('garbage')
    capsys.readouterr()
    assert cli.main(['rescan']) == 0
    out, err = capsys.readouterr()
    assert out == 'Found 2 notes\n'


def test_unknown_note(fs, capsys):
    zk_setup(fs)
    capsys.readouterr()
    assert cli.main(['show', '42']) == 1
    out, err = capsys.readouterr()
    assert err == 'error: Note 42 not found\n'


def test_file_name_errors(fs, capsys):
    zk_setup(fs)
    fs.create_file('/tmp/foo.txt')
    cli.main(['new', '0', 'Hi'])
    capsys.readouterr()
    assert cli.main(['addfile', '1', '/tmp/foo.txt', '-n', 'a/b']) == 1
    out, err = capsys.readouterr()
    assert err == 'error: Invalid file name for note 1: a/b\n'
    assert cli.main(['rmfile', '1', '../body']) == 1
    out, err = capsys.readouterr()
    assert err == 'error: File ../body not found for note 1\n'
    assert Path('/zk/1/body').read_text() == 'Hi'
