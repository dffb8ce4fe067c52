"""
Declarative input validation and sanitization for tool arguments.

Schemas use a small JSON-schema subset:
    {"type": "object",
     "properties": {"content": {"type": "string", "minLength": 1}},
     "required": ["content"]}

Supported keywords: type, properties, required, items, minLength, maxLength,
enum, minimum, maximum.
"""
import html
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputValidationResult:
    """
    Either the accepted input or the list of errors, never both.

    `validated` holds the checked values with strings trimmed; `sanitized` is
    the same data HTML-escaped, for echoing back into markup.
    """

    sanitized: Optional[Dict[str, Any]] = None
    validated: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, (list, tuple)),
    "object": lambda v: isinstance(v, dict),
}


def _escape_strings(value: Any) -> Any:
    if isinstance(value, str):
        return html.escape(value, quote=False)
    if isinstance(value, dict):
        return {key: _escape_strings(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_escape_strings(item) for item in value]
    return value


def validate_input(schema: Dict[str, Any], args: Any) -> InputValidationResult:
    """
    Validate args against a declarative schema.

    Args:
        schema: Object schema describing the expected arguments
        args: Arguments as received from the caller

    Returns:
        InputValidationResult with validated and sanitized copies on success,
        errors otherwise
    """
    errors: List[str] = []
    validated = _validate_value(schema, args, "args", errors)

    if errors:
        logger.info(f"Input validation failed with {len(errors)} error(s)")
        return InputValidationResult(errors=errors)
    return InputValidationResult(sanitized=_escape_strings(validated), validated=validated, errors=[])


def _validate_value(schema: Dict[str, Any], value: Any, path: str, errors: List[str]) -> Any:
    expected_type = schema.get("type")
    if expected_type:
        check = _TYPE_CHECKS.get(expected_type)
        if check is None:
            errors.append(f"{path}: unsupported schema type '{expected_type}'")
            return None
        if not check(value):
            errors.append(f"{path} must be of type {expected_type}")
            return None

    if "enum" in schema and value not in schema["enum"]:
        allowed = ", ".join(str(v) for v in schema["enum"])
        errors.append(f"{path} must be one of: {allowed}")

    if isinstance(value, str):
        length = len(value.strip())
        if "minLength" in schema and length < schema["minLength"]:
            errors.append(f"{path} must be at least {schema['minLength']} characters")
        if "maxLength" in schema and length > schema["maxLength"]:
            errors.append(f"{path} must be at most {schema['maxLength']} characters")
        return value.strip()

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if "minimum" in schema and value < schema["minimum"]:
            errors.append(f"{path} must be >= {schema['minimum']}")
        if "maximum" in schema and value > schema["maximum"]:
            errors.append(f"{path} must be <= {schema['maximum']}")
        return value

    if isinstance(value, dict):
        return _validate_object(schema, value, path, errors)

    if isinstance(value, (list, tuple)):
        items_schema = schema.get("items", {})
        return [
            _validate_value(items_schema, item, f"{path}[{i}]", errors)
            for i, item in enumerate(value)
        ]

    return value


def _validate_object(schema: Dict[str, Any], value: Dict[str, Any], path: str, errors: List[str]) -> Dict[str, Any]:
    properties = schema.get("properties", {})

    for name in schema.get("required", []):
        if value.get(name) is None:
            errors.append(f"{path}.{name} is required")

    result: Dict[str, Any] = {}
    for name, item in value.items():
        if item is None:
            continue
        prop_schema = properties.get(name)
        if prop_schema is None:
            # Unknown keys pass through unchecked
            result[name] = _validate_value({}, item, f"{path}.{name}", errors)
        else:
            result[name] = _validate_value(prop_schema, item, f"{path}.{name}", errors)
    return result
