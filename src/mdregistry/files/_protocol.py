"""Reader and writer protocols consumed by the rendering service.

Rendering never touches the file system directly; it reads templates and
writes output through these collaborators, so tests and callers can inject
in-memory or remote implementations.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TemplateReader(Protocol):
    """Reads template text."""

    def read(self, path: str) -> str:
        """Return the text stored at ``path``.

        Raises:
            TemplateFileNotFoundError: If nothing can be read at ``path``. The
                message must include the path.
        """
        ...


@runtime_checkable
class OutputWriter(Protocol):
    """Writes rendered output."""

    def write(self, path: str, content: str) -> None:
        """Store ``content`` at ``path``, replacing any previous content.

        Raises:
            OutputWriteError: If the content cannot be written.
        """
        ...
