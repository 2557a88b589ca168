"""In-memory reader and writer for tests and embedding."""

from dataclasses import dataclass, field

from mdregistry.exceptions import TemplateFileNotFoundError


@dataclass(slots=True)
class InMemoryFileSystem:
    """Dictionary-backed TemplateReader and OutputWriter.

    Attributes:
        files: Path to content of every stored file.
        writes: Paths in the order they were written.
    """

    files: dict[str, str] = field(default_factory=dict)
    writes: list[str] = field(default_factory=list)

    def read(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            msg = f"Template file not found: {path}"
            raise TemplateFileNotFoundError(msg, path=path) from None

    def write(self, path: str, content: str) -> None:
        self.files[path] = content
        self.writes.append(path)
