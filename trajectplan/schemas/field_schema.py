"""Typed field schema shared by the completion clients and the autofill pipeline."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from trajectplan.core.exceptions import ValidationError
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)

_TRUE_STRINGS = {"true", "ja", "yes", "1"}
_FALSE_STRINGS = {"false", "nee", "no", "0"}


class FieldType(str, Enum):
    """Value types a completion may return for a field."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"


class FieldSpec(BaseModel):
    """One named output field."""

    name: str = Field(..., description="Field name as persisted")
    type: FieldType = Field(default=FieldType.STRING)
    description: Optional[str] = Field(default=None)
    minimum: Optional[int] = Field(default=None, description="Inclusive lower bound for integers")
    maximum: Optional[int] = Field(default=None, description="Inclusive upper bound for integers")
    enum: Optional[List[str]] = Field(default=None, description="Allowed string values")
    format: Optional[str] = Field(default=None, description="JSON-Schema format hint, e.g. 'date'")

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type.value}
        if self.description:
            schema["description"] = self.description
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.format:
            schema["format"] = self.format
        return schema

    def coerce(self, value: Any) -> Any:
        """Coerce a returned value to the field type.

        Raises:
            ValidationError: If the value cannot represent the field type
        """
        if self.type == FieldType.STRING:
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ValidationError(f"Field '{self.name}' expected a string, got {type(value).__name__}")
            text = value if isinstance(value, str) else str(value)
            if self.enum and text.strip():
                for allowed in self.enum:
                    if allowed.lower() == text.strip().lower():
                        return allowed
                raise ValidationError(f"Field '{self.name}' value '{text}' is not one of {self.enum}")
            return text

        if self.type == FieldType.BOOLEAN:
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in _TRUE_STRINGS:
                    return True
                if lowered in _FALSE_STRINGS:
                    return False
            raise ValidationError(f"Field '{self.name}' expected a boolean, got {value!r}")

        # Integer
        if isinstance(value, bool):
            raise ValidationError(f"Field '{self.name}' expected an integer, got a boolean")
        if isinstance(value, int):
            number = value
        elif isinstance(value, float) and value.is_integer():
            number = int(value)
        elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
            number = int(value.strip())
        else:
            raise ValidationError(f"Field '{self.name}' expected an integer, got {value!r}")

        if self.minimum is not None and number < self.minimum:
            raise ValidationError(f"Field '{self.name}' value {number} is below minimum {self.minimum}")
        if self.maximum is not None and number > self.maximum:
            raise ValidationError(f"Field '{self.name}' value {number} is above maximum {self.maximum}")
        return number


class FieldSchema(BaseModel):
    """Named set of output fields, rendered as a function/tool definition."""

    name: str = Field(..., description="Function name used for tool calling")
    description: str = Field(default="")
    properties: List[FieldSpec] = Field(default_factory=list)
    required: List[str] = Field(default_factory=list)

    @property
    def field_names(self) -> List[str]:
        return [spec.name for spec in self.properties]

    def get(self, name: str) -> Optional[FieldSpec]:
        for spec in self.properties:
            if spec.name == name:
                return spec
        return None

    def to_json_schema(self) -> Dict[str, Any]:
        """JSON-Schema object describing the fields."""
        return {
            "type": "object",
            "properties": {spec.name: spec.to_json_schema() for spec in self.properties},
            "required": list(self.required),
        }

    def to_tool(self) -> Dict[str, Any]:
        """OpenAI-style function tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.to_json_schema(),
            },
        }

    def validate_output(self, data: Any) -> Dict[str, Any]:
        """Check a structured completion result against the schema.

        Unknown keys are dropped and None values are skipped. Known values are
        coerced to their field type.

        Args:
            data: Parsed completion output

        Returns:
            Dict of validated field values

        Raises:
            ValidationError: If the output is not an object, a value does not
                conform, or a required field is missing
        """
        if not isinstance(data, dict):
            raise ValidationError(
                f"Structured response for '{self.name}' must be an object, got {type(data).__name__}"
            )

        validated: Dict[str, Any] = {}
        for key, value in data.items():
            spec = self.get(key)
            if spec is None:
                LOGGER.debug(f"Dropping unknown field '{key}' from '{self.name}' response")
                continue
            if value is None:
                continue
            validated[key] = spec.coerce(value)

        missing = [
            name for name in self.required
            if name not in validated
            or (isinstance(validated[name], str) and not validated[name].strip())
        ]
        if missing:
            raise ValidationError(f"Structured response for '{self.name}' is missing required fields: {missing}")

        return validated
