"""
Resolution of declared tag filters into concrete tag-index predicates.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .errors import FieldNotFound, UnresolvablePath
from .fieldpath import Document
from .input import Strategy, TagFilter
from .resources import Resource

logger = logging.getLogger(__name__)

# Tags the Crossplane providers put on every external resource they manage.
NAME_TAG_KEY = "crossplane-name"
KIND_TAG_KEY = "crossplane-kind"


@dataclass(frozen=True)
class TagPredicate:
    """A key that must carry one of the given values."""
    key: str
    values: Tuple[str, ...]

    def to_tag_filter(self) -> Dict[str, object]:
        """Render in the shape GetResources expects for TagFilters."""
        return {"Key": self.key, "Values": list(self.values)}

    def __str__(self) -> str:
        return f"{self.key}={','.join(self.values)}"


def resolve_predicates(filters: Sequence[TagFilter], reference: Document, resource: Resource) -> List[TagPredicate]:
    """
    Build the predicates that identify the external counterpart of a resource.

    Explicit filters come first in declaration order, followed by the name and
    kind predicates of the resource itself, so that a generic filter can never
    match another resource's external counterpart.

    Args:
        filters: Tag filters from the function input
        reference: Object valuePath filters are resolved against (the composite resource)
        resource: Desired resource being resolved

    Returns:
        Ordered list of predicates

    Raises:
        UnresolvablePath: If a valuePath does not exist in the reference object
    """
    predicates = [_resolve_filter(tf, reference) for tf in filters]
    predicates.extend(implicit_predicates(resource))
    logger.debug(f"Resolved predicates for {resource.composition_name}: {[str(p) for p in predicates]}")
    return predicates


def implicit_predicates(resource: Resource) -> List[TagPredicate]:
    return [
        TagPredicate(NAME_TAG_KEY, (resource.platform_name,)),
        TagPredicate(KIND_TAG_KEY, (resource.group_kind,)),
    ]


def _resolve_filter(tag_filter: TagFilter, reference: Document) -> TagPredicate:
    if tag_filter.strategy is Strategy.VALUE:
        return TagPredicate(tag_filter.key, (tag_filter.value,))

    try:
        # An empty string is a legitimate value; it simply matches nothing.
        resolved = reference.get_string(tag_filter.value_path)
    except FieldNotFound as e:
        raise UnresolvablePath(tag_filter.key, tag_filter.value_path) from e
    return TagPredicate(tag_filter.key, (resolved,))
