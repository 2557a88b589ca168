"""Local file system reader and writer."""

import tempfile
from pathlib import Path

from mdregistry.exceptions import (
    FileDecodeError,
    OutputWriteError,
    TemplateFileNotFoundError,
)


class LocalFileSystem:
    """Reads and writes files relative to a base directory.

    Relative paths are resolved against ``base_dir``; absolute paths are used
    as they are. Writes are atomic: content goes to a temporary file in the
    target directory which then replaces the target.

    Args:
        base_dir: Directory relative paths are resolved against. Defaults to
            the current working directory.
    """

    def __init__(self, base_dir: Path | str | None = None) -> None:
        self.base_dir: Path = Path(base_dir) if base_dir is not None else Path.cwd()

    def resolve(self, path: str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.base_dir / candidate

    def read(self, path: str) -> str:
        target = self.resolve(path)
        try:
            return target.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Template file not found: {target}"
            raise TemplateFileNotFoundError(msg, path=str(target), cause=e) from e
        except UnicodeDecodeError as e:
            msg = f"Template file is not valid UTF-8: {target}"
            raise FileDecodeError(msg, path=str(target), cause=e) from e

    def write(self, path: str, content: str) -> None:
        target = self.resolve(path)
        temp_path: Path | None = None
        try:
            _ = target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=target.parent,
                delete=False,
                suffix=".tmp",
                encoding="utf-8",
            ) as f:
                _ = f.write(content)
                temp_path = Path(f.name)
            _ = temp_path.replace(target)
        except OSError as e:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            msg = f"Failed to write {target}: {e}"
            raise OutputWriteError(msg, path=str(target), cause=e) from e
