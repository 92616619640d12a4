"""
Function input: tag filters and the optional single-resource target.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ValidationError

DEFAULT_EXTERNAL_NAME_TAG = "crossplane.io/external-name"


class Strategy(Enum):
    """How a tag filter obtains its value."""
    VALUE = "value"            # Static value given in the input
    VALUE_PATH = "valuePath"   # Resolved from a field path on the composite resource


VALID_STRATEGIES = [s.value for s in Strategy]


@dataclass(frozen=True)
class TagFilter:
    """A single tag predicate declared in the function input."""
    key: str
    strategy: Strategy
    value: Optional[str] = None        # Set iff strategy is VALUE
    value_path: Optional[str] = None   # Set iff strategy is VALUE_PATH

    def __post_init__(self):
        if not self.key:
            raise ValidationError('"key" must not be empty')
        if self.strategy is Strategy.VALUE:
            if not self.value:
                raise ValidationError(f'using "{Strategy.VALUE.value}" strategy, but "value" is empty')
            if self.value_path:
                raise ValidationError(f'using "{Strategy.VALUE.value}" strategy, but "valuePath" is also set')
        else:
            if not self.value_path:
                raise ValidationError(f'using "{Strategy.VALUE_PATH.value}" strategy, but "valuePath" is empty')
            if self.value:
                raise ValidationError(f'using "{Strategy.VALUE_PATH.value}" strategy, but "value" is also set')

    @classmethod
    def static(cls, key: str, value: str) -> "TagFilter":
        return cls(key=key, strategy=Strategy.VALUE, value=value)

    @classmethod
    def from_path(cls, key: str, value_path: str) -> "TagFilter":
        return cls(key=key, strategy=Strategy.VALUE_PATH, value_path=value_path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TagFilter":
        """
        Create a tag filter from its input representation.

        Raises:
            ValidationError: If the filter is malformed
        """
        if not isinstance(data, dict):
            raise ValidationError(f"tag filter must be an object, got {type(data).__name__}")

        key = _optional_string(data, "key") or ""
        raw_strategy = _optional_string(data, "strategy")
        if not raw_strategy:
            if not key:
                raise ValidationError('"key" must not be empty')
            raise ValidationError('"strategy" must not be empty')
        try:
            strategy = Strategy(raw_strategy)
        except ValueError:
            raise ValidationError(
                f"invalid strategy {raw_strategy!r}, valid options are: {VALID_STRATEGIES}"
            ) from None

        # Fields that belong to the other strategy are ignored.
        if strategy is Strategy.VALUE:
            return cls.static(key, _optional_string(data, "value") or "")
        return cls.from_path(key, _optional_string(data, "valuePath") or "")

    def to_dict(self) -> Dict[str, str]:
        result = {"key": self.key, "strategy": self.strategy.value}
        if self.strategy is Strategy.VALUE:
            result["value"] = self.value
        else:
            result["valuePath"] = self.value_path
        return result


@dataclass(frozen=True)
class Input:
    """Validated function input."""
    tag_filters: List[TagFilter] = field(default_factory=list)
    resource_name: Optional[str] = None                         # Legacy single-resource mode when set
    external_name_tag: Optional[str] = None                     # Overrides the tag holding the identity to adopt

    @property
    def single_resource(self) -> bool:
        return self.resource_name is not None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Input":
        """
        Parse and validate the function input document.

        Args:
            data: The input object as sent by the orchestrator

        Returns:
            A validated Input

        Raises:
            ValidationError: If the input is missing or malformed
        """
        if data is None:
            raise ValidationError("function input is missing")
        if not isinstance(data, dict):
            raise ValidationError(f"function input must be an object, got {type(data).__name__}")

        resource_name = None
        if "resourceName" in data:
            resource_name = _optional_string(data, "resourceName")
            if not resource_name:
                raise ValidationError("resourceName must not be empty")

        external_name_tag = None
        if "externalNameTag" in data:
            external_name_tag = _optional_string(data, "externalNameTag") or ""
            if not external_name_tag:
                raise ValidationError("externalNameTag must not be empty")

        raw_filters = data.get("tagFilters") or []
        if not isinstance(raw_filters, list):
            raise ValidationError("tagFilters must be a list")

        filters = []
        for index, raw in enumerate(raw_filters):
            try:
                filters.append(TagFilter.from_dict(raw))
            except ValidationError as e:
                raise ValidationError(f"invalid tag filter at index {index}: {e}") from e

        return cls(
            tag_filters=filters,
            resource_name=resource_name,
            external_name_tag=external_name_tag,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"tagFilters": [tf.to_dict() for tf in self.tag_filters]}
        if self.resource_name is not None:
            result["resourceName"] = self.resource_name
        if self.external_name_tag is not None:
            result["externalNameTag"] = self.external_name_tag
        return result


def _optional_string(data: Dict[str, Any], name: str) -> Optional[str]:
    value = data.get(name)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'"{name}" must be a string, got {type(value).__name__}')
    return value
