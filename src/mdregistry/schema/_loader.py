# pyright: reportAny=false, reportUnknownVariableType=false
"""Schema file loading.

Schemas are JSON (``.json``) or YAML (``.yaml``/``.yml``) documents.
"""

from pathlib import Path

import orjson
import yaml

from mdregistry.exceptions import FileError, SchemaError

from ._models import SchemaDefinition

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def load_schema(path: Path | str) -> SchemaDefinition:
    """Read and parse a schema file.

    Args:
        path: Path to a JSON or YAML schema.

    Returns:
        The parsed SchemaDefinition, with ``source`` set to the path.

    Raises:
        FileError: If the file cannot be read.
        SchemaError: If the content does not parse, is not an object, or
            carries a malformed directive.
    """
    path = Path(path)
    try:
        content = path.read_bytes()
    except OSError as e:
        msg = f"Failed to read schema {path}: {e}"
        raise FileError(msg, path=str(path), cause=e) from e

    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            data = yaml.safe_load(content)
        else:
            data = orjson.loads(content)
    except (orjson.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Invalid schema {path}: {e}"
        raise SchemaError(msg, path=str(path)) from e

    if not isinstance(data, dict):
        msg = f"Schema {path} must contain an object, got {type(data).__name__}"
        raise SchemaError(msg, path=str(path), value=data)

    return SchemaDefinition.from_dict(data, source=str(path))
