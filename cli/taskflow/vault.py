"""
Vault storage, metadata cache and frontmatter mutator

These are the host collaborators the reclassifier works against: a vault
on the local filesystem addressed by vault-relative '/'-separated paths,
a frontmatter index over its notes, and a read-modify-write frontmatter
mutator.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import FolderCollisionError, TaskflowIOError
from .frontmatter import construct_file_content, detect_newline, parse_frontmatter
from .models import Note
from .paths import ancestors, is_in_scope

logger = logging.getLogger(__name__)


class Vault:
    """Document storage over an Obsidian vault directory"""

    def __init__(self, vault_path: Path):
        self.vault_path = Path(vault_path)

    def _abs(self, path: str) -> Path:
        return self.vault_path / path if path else self.vault_path

    def get_markdown_files(self, scope: str = "") -> List[Note]:
        """All Markdown notes, optionally limited to the folder `scope`"""
        notes = []
        for md_file in self.vault_path.rglob("*"):
            if md_file.suffix.lower() != ".md":
                continue
            relative = md_file.relative_to(self.vault_path)
            # Skip files in hidden directories (starting with .)
            if any(part.startswith('.') for part in relative.parts):
                continue
            if not md_file.is_file():
                continue
            path = relative.as_posix()
            if is_in_scope(path, scope):
                notes.append(Note(path))
        return sorted(notes, key=lambda n: n.path)

    def get_by_path(self, path: str) -> Optional[Note]:
        if path and self._abs(path).is_file():
            return Note(path)
        return None

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def is_folder(self, path: str) -> bool:
        return self._abs(path).is_dir()

    def stat(self, note: Note) -> Tuple[int, int]:
        st = self._abs(note.path).stat()
        return st.st_mtime_ns, st.st_size

    async def create_folder(self, path: str) -> None:
        try:
            self._abs(path).mkdir(exist_ok=True)
        except OSError as e:
            raise TaskflowIOError(f"Could not create folder '{path}': {e}", target=path) from e
        logger.debug("Created folder %s", path)

    async def ensure_folder(self, folder_path: str) -> None:
        """Ensure a folder path exists, creating any missing intermediate folders.

        Every component is checked before anything is created, so a component
        that exists as a file aborts the call without touching the vault.
        """
        if not folder_path:
            return
        missing = []
        for current in ancestors(folder_path):
            if self.is_folder(current):
                continue
            if self.exists(current):
                raise FolderCollisionError(folder_path, current)
            missing.append(current)
        for current in missing:
            await self.create_folder(current)

    async def rename(self, note: Note, new_path: str) -> Note:
        """Move a note; refuses to overwrite an existing file"""
        source = self._abs(note.path)
        target = self._abs(new_path)
        if target.exists():
            raise TaskflowIOError(
                f"Destination '{new_path}' already exists", source=note.path, target=new_path
            )
        try:
            source.rename(target)
        except OSError as e:
            raise TaskflowIOError(
                f"Could not move '{note.path}' to '{new_path}': {e}", source=note.path, target=new_path
            ) from e
        return Note(new_path)

    async def create(self, path: str, content: str) -> Note:
        try:
            with self._abs(path).open("x", encoding="utf-8", newline="") as f:
                f.write(content)
        except FileExistsError as e:
            raise TaskflowIOError(f"File '{path}' already exists", target=path) from e
        except OSError as e:
            raise TaskflowIOError(f"Could not create '{path}': {e}", target=path) from e
        return Note(path)

    def read_sync(self, note: Note) -> str:
        with self._abs(note.path).open("r", encoding="utf-8", newline="") as f:
            return f.read()

    async def read(self, note: Note) -> str:
        try:
            return self.read_sync(note)
        except OSError as e:
            raise TaskflowIOError(f"Could not read '{note.path}': {e}", source=note.path) from e

    async def modify(self, note: Note, content: str) -> None:
        try:
            with self._abs(note.path).open("w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise TaskflowIOError(f"Could not write '{note.path}': {e}", source=note.path) from e


class MetadataCache:
    """Parsed frontmatter of vault notes, refreshed when a file's mtime/size changes"""

    def __init__(self, vault: Vault):
        self.vault = vault
        self._entries: Dict[str, Tuple[Tuple[int, int], Optional[Dict[str, Any]]]] = {}

    def get_frontmatter(self, note: Note) -> Optional[Dict[str, Any]]:
        """Frontmatter of `note`, or None when it has none (or cannot be read)"""
        try:
            stamp = self.vault.stat(note)
        except OSError:
            self._entries.pop(note.path, None)
            return None

        cached = self._entries.get(note.path)
        if cached is None or cached[0] != stamp:
            try:
                content = self.vault.read_sync(note)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read frontmatter of %s: %s", note.path, e)
                return None
            frontmatter, _ = parse_frontmatter(content)
            cached = (stamp, frontmatter)
            self._entries[note.path] = cached

        frontmatter = cached[1]
        return dict(frontmatter) if frontmatter is not None else None

    def forget(self, path: str) -> None:
        self._entries.pop(path, None)


class FileManager:
    """Read-modify-write access to a note's frontmatter"""

    def __init__(self, vault: Vault, metadata_cache: MetadataCache):
        self.vault = vault
        self.metadata_cache = metadata_cache

    async def process_front_matter(self, note: Note, fn: Callable[[Dict[str, Any]], None]) -> bool:
        """Apply `fn` to a mutable copy of the frontmatter and persist it.

        Other keys, their order and the note body are preserved. Returns True
        when the file was rewritten.
        """
        content = await self.vault.read(note)
        frontmatter, body = parse_frontmatter(content, strict=True)
        original = copy.deepcopy(frontmatter or {})
        frontmatter = copy.deepcopy(original)
        fn(frontmatter)
        if frontmatter == original:
            return False

        new_content = construct_file_content(frontmatter, body, detect_newline(content))

        await self.vault.modify(note, new_content)
        self.metadata_cache.forget(note.path)
        return True
