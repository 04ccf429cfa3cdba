"""
In-memory asset tree.

The built viewer bundle is read from disk once at startup and kept as an
immutable mapping of relative POSIX path -> Asset. Request handling only
ever reads from it.
"""

import hashlib
import itertools
import logging
import mimetypes
import posixpath
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"

# Make sure browsers get correct types regardless of the host's mime database.
CONTENT_TYPE_OVERRIDES = {
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".wasm": "application/wasm",
    ".geojson": "application/geo+json",
    ".map": "application/json",
}


class AssetTreeMissing(FileNotFoundError):
    """Raised when the bundle directory does not exist."""


@dataclass(frozen=True)
class Asset:
    data: bytes
    content_type: str
    etag: str

    @property
    def size(self) -> int:
        return len(self.data)


def guess_content_type(name: str) -> str:
    ext = posixpath.splitext(name)[1].lower()
    if ext in CONTENT_TYPE_OVERRIDES:
        return CONTENT_TYPE_OVERRIDES[ext]
    content_type, _ = mimetypes.guess_type(name)
    return content_type or "application/octet-stream"


def make_asset(name: str, data: bytes) -> Asset:
    etag = '"' + hashlib.md5(data).hexdigest() + '"'
    return Asset(data=data, content_type=guess_content_type(name), etag=etag)


def clean_path(path: str) -> Optional[str]:
    """Normalize a request path to a tree key, or None if it escapes the root."""
    parts = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            return None
        parts.append(part)
    return "/".join(parts)


class AssetTree:
    """Read-only mapping of bundle paths to assets."""

    def __init__(self, files: Mapping[str, Asset]):
        self._files = MappingProxyType(dict(files))
        dirs = {""}
        for name in self._files:
            parent = posixpath.dirname(name)
            while parent:
                dirs.add(parent)
                parent = posixpath.dirname(parent)
        self._dirs = frozenset(dirs)

    @classmethod
    def from_contents(cls, contents: Mapping[str, Union[bytes, str]]) -> "AssetTree":
        files = {}
        for name, data in contents.items():
            if isinstance(data, str):
                data = data.encode("utf-8")
            files[clean_path(name)] = make_asset(name, data)
        return cls(files)

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def get(self, path: str) -> Optional[Asset]:
        return self._files.get(path)

    def is_dir(self, path: str) -> bool:
        key = clean_path(path)
        return key is not None and key in self._dirs

    def listdir(self, path: str) -> Optional[List[str]]:
        """Sorted direct children of a directory, subdirectories with a trailing slash."""
        key = clean_path(path)
        if key is None or key not in self._dirs:
            return None
        prefix = key + "/" if key else ""
        children = set()
        for name in itertools.chain(self._files, self._dirs):
            if not name or not name.startswith(prefix):
                continue
            rest = name[len(prefix):]
            if not rest or "/" in rest:
                continue
            children.add(rest + "/" if name in self._dirs else rest)
        return sorted(children)

    def resolve(self, path: str) -> Optional[Asset]:
        """Find the asset a request path refers to.

        A file path returns that file; a directory path returns its
        index.html when there is one. Everything else is None.
        """
        key = clean_path(path)
        if key is None:
            return None
        asset = self._files.get(key)
        if asset is not None:
            return asset
        if key in self._dirs:
            return self._files.get(posixpath.join(key, INDEX_FILE) if key else INDEX_FILE)
        return None


def load_asset_tree(root: Path) -> AssetTree:
    """Read every file under root into memory."""
    root = Path(root)
    if not root.is_dir():
        raise AssetTreeMissing(f"asset directory does not exist: {root}")

    files: Dict[str, Asset] = {}
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        name = path.relative_to(root).as_posix()
        files[name] = make_asset(name, path.read_bytes())

    logger.debug("Loaded %d assets from %s", len(files), root)
    return AssetTree(files)
