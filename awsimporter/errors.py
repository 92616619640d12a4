"""
Error taxonomy for identity reconciliation passes.
"""

from typing import List, Optional


class ImporterError(Exception):
    """Base class for every error that aborts a reconciliation pass."""


class ValidationError(ImporterError):
    """Raised when the function input is structurally invalid."""


class FieldPathError(ImporterError):
    """Raised when a field path is malformed or traverses a value of the wrong type."""


class FieldNotFound(FieldPathError):
    """Raised when a field path does not exist in a document."""

    def __init__(self, path: str, segment: Optional[str] = None):
        self.path = path
        self.segment = segment
        detail = f" (no field {segment!r})" if segment else ""
        super().__init__(f"{path}: no such field{detail}")


class UnresolvablePath(ImporterError):
    """Raised when a tag filter's valuePath does not exist in the reference object."""

    def __init__(self, key: str, value_path: str):
        self.key = key
        self.value_path = value_path
        super().__init__(f"cannot resolve valuePath {value_path!r} for tag filter {key!r}")


class AmbiguousMatch(ImporterError):
    """Raised when more than one external resource matches a query."""

    def __init__(self, composition_name: str, candidates: List[str]):
        self.composition_name = composition_name
        self.candidates = list(candidates)
        super().__init__(
            f"found more than one resource matching tag filters for {composition_name!r}: {self.candidates}"
        )


class IdentityTagMissing(ImporterError):
    """Raised when a single match carries no usable identity tag."""

    def __init__(self, resource_arn: str, tag_key: str):
        self.resource_arn = resource_arn
        self.tag_key = tag_key
        super().__init__(
            f"found resource {resource_arn!r} matching tag filters, but {tag_key!r} tag is not present or is empty"
        )


class IndexUnavailable(ImporterError):
    """Raised when the tag index cannot be queried to completion."""


class UnknownResource(ImporterError):
    """Raised when a composition name has no desired resource."""

    def __init__(self, composition_name: str):
        self.composition_name = composition_name
        super().__init__(f"composed resource {composition_name!r} not found in desired resources")


class IdentityConflict(ImporterError):
    """Raised when writing an identity would overwrite a different one."""

    def __init__(self, composition_name: str, current: str, proposed: str):
        self.composition_name = composition_name
        self.current = current
        self.proposed = proposed
        super().__init__(
            f"{composition_name!r} already has external name {current!r}, refusing to overwrite with {proposed!r}"
        )


class MalformedRequest(ImporterError):
    """Raised when the request does not have the expected desired/observed structure."""
