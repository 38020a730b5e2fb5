from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class FilterOperator(str, Enum):
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    LESS_THAN = "LessThan"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"
    CONTAINS = "Contains"
    STARTS_WITH = "StartsWith"
    ENDS_WITH = "EndsWith"


class FilterCriterion(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    property_name: str = Field(validation_alias=AliasChoices("PropertyName", "propertyName", "property_name"), min_length=1)
    operator: FilterOperator = Field(validation_alias=AliasChoices("Operator", "operator"))
    value: Optional[str] = Field(default=None, validation_alias=AliasChoices("Value", "value"))

    @field_validator("value", mode="before")
    @classmethod
    def _value_as_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value


FilterList = TypeAdapter(List[FilterCriterion])


def parse_filters(raw: Optional[str]) -> List[FilterCriterion]:
    """Parse the JSON filter list carried in the ``filters`` query parameter.

    Format: ``[{"PropertyName": "Name", "Operator": "Equal", "Value": "..."}]``.
    Raises ``pydantic.ValidationError`` on malformed input.
    """
    if raw is None or not raw.strip():
        return []
    return FilterList.validate_json(raw)
