"""File collaborators: reader/writer protocols and implementations."""

from ._fake import InMemoryFileSystem
from ._local import LocalFileSystem
from ._protocol import OutputWriter, TemplateReader

__all__ = [
    "InMemoryFileSystem",
    "LocalFileSystem",
    "OutputWriter",
    "TemplateReader",
]
