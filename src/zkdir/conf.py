from __future__ import annotations
from dataclasses import dataclass, replace
import os
import os.path
from typing import Optional

from zkdir.errors import Error


@dataclass
class ZkConf:
    """Configures where the store lives and how the command-line tool behaves.

    Typically loaded from the variable ``conf`` in the file ``~/.zkdir.conf.py``, for example:

    .. code-block:: python

       from zkdir.conf import *
       conf = ZkConf(root='~/Documents/zk', editor='nano')
    """

    root: str = os.path.join('~', 'zk')
    """Directory containing the store. ``~`` is expanded."""

    search_workers: Optional[int] = None
    """Maximum number of threads used to search note bodies. If None, a default based on the CPU count is used."""

    editor: Optional[str] = None
    """Command used by ``zkdir edit``. If None, the ``EDITOR`` environment variable is used, or else ``vim``."""

    @classmethod
    def user_config_path(cls) -> str:
        return os.path.expanduser(os.path.join('~', '.zkdir.conf.py'))

    @classmethod
    def for_user(cls) -> ZkConf:
        """Loads ``~/.zkdir.conf.py``, or returns the default configuration if it does not exist.

        Raises :exc:`zkdir.errors.Error` if the file exists but does not assign a ZkConf to ``conf``.
        """
        path = cls.user_config_path()
        if not os.path.exists(path):
            return cls()
        with open(path, 'r') as file:
            conf_script = file.read()
        context = {}
        exec(conf_script, context)
        if 'conf' not in context or not isinstance(context['conf'], cls):
            raise Error(f'You need to assign an instance of ZkConf to the variable `conf` in your config file: {path}')
        return context['conf']

    def standardize(self) -> ZkConf:
        return replace(self, root=os.path.abspath(os.path.expanduser(self.root)))

    def editor_command(self) -> str:
        return self.editor or os.environ.get('EDITOR') or 'vim'

    def instantiate(self):
        """Opens the configured store. See :meth:`zkdir.store.NoteStore.open`."""
        from zkdir.store import NoteStore
        return NoteStore.open(self.standardize().root)
