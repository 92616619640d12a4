"""
Field path access for structured (JSON-like) documents.

Paths use the Crossplane field path syntax:

    metadata.name
    spec.forProvider.tags[0]
    metadata.annotations["crossplane.io/external-name"]
    metadata.labels[app]
"""

import copy
from typing import Any, Dict, List, Optional, Union

from .errors import FieldNotFound, FieldPathError

Segment = Union[str, int]


def parse_path(path: str) -> List[Segment]:
    """
    Split a field path into field names (str) and list indexes (int).

    Raises:
        FieldPathError: If the path is empty or malformed
    """
    if not path:
        raise FieldPathError("field path must not be empty")

    segments: List[Segment] = []
    pos = 0
    while pos < len(path):
        if path[pos] == "[":
            pos = _parse_bracket(path, pos, segments)
            if pos < len(path) and path[pos] not in ".[":
                raise FieldPathError(f"{path}: expected '.' or '[' at position {pos}")
            continue

        if path[pos] == ".":
            if not segments:
                raise FieldPathError(f"{path}: unexpected '.' at position {pos}")
            pos += 1

        start = pos
        while pos < len(path) and path[pos] not in ".[":
            if path[pos] == "]":
                raise FieldPathError(f"{path}: unexpected ']' at position {pos}")
            pos += 1
        if pos == start:
            raise FieldPathError(f"{path}: empty field name at position {start}")
        segments.append(path[start:pos])

    return segments


def _parse_bracket(path: str, pos: int, segments: List[Segment]) -> int:
    pos += 1
    if pos < len(path) and path[pos] in "\"'":
        quote = path[pos]
        close = path.find(quote, pos + 1)
        if close == -1 or path[close + 1:close + 2] != "]":
            raise FieldPathError(f"{path}: unterminated quoted key at position {pos}")
        segments.append(path[pos + 1:close])
        return close + 2

    close = path.find("]", pos)
    if close == -1:
        raise FieldPathError(f"{path}: unterminated '[' at position {pos - 1}")
    content = path[pos:close]
    if not content:
        raise FieldPathError(f"{path}: empty brackets at position {pos - 1}")
    segments.append(int(content) if content.isdigit() else content)
    return close + 1


class Document:
    """A mutable JSON-like object addressed by field paths."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = data if data is not None else {}

    def get(self, path: str) -> Any:
        current: Any = self.data
        for segment in parse_path(path):
            if isinstance(segment, int):
                if not isinstance(current, list):
                    raise FieldPathError(f"{path}: {segment} is an index, but the value is not a list")
                if segment >= len(current):
                    raise FieldNotFound(path, str(segment))
                current = current[segment]
            else:
                if not isinstance(current, dict):
                    raise FieldPathError(f"{path}: {segment!r} is a field, but the value is not an object")
                if segment not in current:
                    raise FieldNotFound(path, segment)
                current = current[segment]
            # An explicit null reads as a missing field, not a type mismatch.
            if current is None:
                raise FieldNotFound(path, str(segment))
        return current

    def get_string(self, path: str) -> str:
        """
        Read a string value.

        An existing empty string is returned as-is; only a missing field
        raises FieldNotFound.
        """
        value = self.get(path)
        if not isinstance(value, str):
            raise FieldPathError(f"{path}: value is of type {type(value).__name__}, not a string")
        return value

    def set_string(self, path: str, value: str) -> None:
        self.set_value(path, value)

    def set_value(self, path: str, value: Any) -> None:
        """Write a value, creating missing intermediate objects and lists."""
        segments = parse_path(path)
        current: Any = self.data
        for segment, following in zip(segments, segments[1:]):
            child = self._child(current, segment, path)
            if child is None:
                child = [] if isinstance(following, int) else {}
                self._assign(current, segment, child, path)
            current = child
        self._assign(current, segments[-1], value, path)

    def copy(self) -> "Document":
        return Document(copy.deepcopy(self.data))

    @staticmethod
    def _child(container: Any, segment: Segment, path: str) -> Any:
        if isinstance(segment, int):
            if not isinstance(container, list):
                raise FieldPathError(f"{path}: {segment} is an index, but the value is not a list")
            return container[segment] if segment < len(container) else None
        if not isinstance(container, dict):
            raise FieldPathError(f"{path}: {segment!r} is a field, but the value is not an object")
        return container.get(segment)

    @staticmethod
    def _assign(container: Any, segment: Segment, value: Any, path: str) -> None:
        if isinstance(segment, int):
            if not isinstance(container, list):
                raise FieldPathError(f"{path}: {segment} is an index, but the value is not a list")
            if segment >= len(container):
                container.extend([None] * (segment + 1 - len(container)))
            container[segment] = value
            return
        if not isinstance(container, dict):
            raise FieldPathError(f"{path}: {segment!r} is a field, but the value is not an object")
        container[segment] = value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Document) and self.data == other.data

    def __repr__(self) -> str:
        return f"Document({self.data!r})"
