"""
Tag helpers shared by the gateway and the command line.
"""

from typing import Dict, List, Optional

from .errors import ValidationError
from .input import TagFilter


def tags_to_dict(tags: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """
    Convert a GetResources tag list into a dictionary.

    Args:
        tags: List of {"Key": ..., "Value": ...} entries, possibly None

    Returns:
        Dictionary of tag values by key
    """
    return {tag["Key"]: tag.get("Value", "") for tag in tags or []}


def parse_tag_filters(filter_strings: List[str]) -> List[TagFilter]:
    """
    Parse user-provided filter strings into tag filters.

    "key=value" filters on a literal value; "key=@path" resolves the value
    from a field path on the composite resource.

    Args:
        filter_strings: Filter strings in "key=value" or "key=@path" format

    Returns:
        Tag filters in the given order

    Raises:
        ValidationError: If a filter string is malformed
    """
    filters = []

    for filter_str in filter_strings:
        if "=" not in filter_str:
            raise ValidationError(f"Invalid filter format: {filter_str}. Expected 'key=value'")

        key, value = filter_str.split("=", 1)
        key, value = key.strip(), value.strip()
        if not key or not value:
            raise ValidationError(f"Invalid filter format: {filter_str}. Key and value must not be empty")

        if value.startswith("@"):
            filters.append(TagFilter.from_path(key, value[1:]))
        else:
            filters.append(TagFilter.static(key, value))

    return filters
