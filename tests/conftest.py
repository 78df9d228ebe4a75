import pytest
from zkdir.store import NoteStore


@pytest.fixture
def store(fs):
    NoteStore.init('/zk')
    return NoteStore.open('/zk')
