"""
Vault path helpers

All vault paths are relative, '/'-separated strings. The vault root is "".
"""

from typing import List


def normalize_folder(value: str) -> str:
    """Strip whitespace and surrounding slashes from a folder setting"""
    if not value:
        return ""
    return value.strip().strip("/")


def build_path(root: str, sub: str) -> str:
    """
    Build an absolute vault path from a root and a relative sub-path.

    If sub is empty, returns root. If root is empty, sub is treated as absolute.
    """
    if not root:
        return sub
    if not sub:
        return root
    return f"{root}/{sub}"


def join_note_path(folder: str, name: str) -> str:
    """Path of a note called `name` inside `folder` ("" = vault root)"""
    return f"{folder}/{name}" if folder else name


def parent_path(path: str) -> str:
    if "/" not in path:
        return ""
    return path.rsplit("/", 1)[0]


def is_in_scope(path: str, root: str) -> bool:
    """True when `path` lives under `root` (always true for an empty root)"""
    if not root:
        return True
    return path.startswith(f"{root}/")


def ancestors(folder_path: str) -> List[str]:
    """Every prefix of a folder path, ancestor first: a/b/c -> [a, a/b, a/b/c]"""
    if not folder_path:
        return []
    parts = folder_path.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts) + 1)]
