from contextlib import suppress
from os.path import expanduser, expandvars
from pathlib import Path, PurePath
from typing import AbstractSet, Iterable, Iterator, Sequence

from std2.pathlib import walk

from ...shared.types import FileItem

_RENAMES = {
    "typescript_react": "typescriptreact",
    "javascript_react": "javascriptreact",
}


def scope_for(path: PurePath) -> str:
    """
    python.snippets, python-django.snippets -> python
    """

    stem = path.stem.strip()
    if stem in _RENAMES:
        return _RENAMES[stem]
    else:
        scope, _, _ = stem.partition("-")
        return scope


def resolve_dir(directory: str) -> Path:
    return Path(expandvars(expanduser(directory))).resolve()


def _walk(root: Path, exts: AbstractSet[str]) -> Iterator[FileItem]:
    with suppress(OSError):
        for path in walk(root):
            if path.suffix in exts:
                rel = path.relative_to(root)
                if len(rel.parts) > 1:
                    scope, *_ = rel.parts
                    yield FileItem(path=path, scope=_RENAMES.get(scope, scope))
                else:
                    yield FileItem(path=path, scope=scope_for(path))


def catalog(directories: Iterable[Path], exts: AbstractSet[str]) -> Sequence[FileItem]:
    items = {
        item.path: item for root in directories for item in _walk(root, exts=exts)
    }
    return tuple(item for _, item in sorted(items.items()))
