"""
Schema validation for gitflow configuration.

Schemas live in gitflow/schemas/<name>.schema.json. Each one is compiled into
a validator the first time it is used. All violations are collected so a
broken config file reports everything wrong with it at once.
"""

import json
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.validators import validator_for

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"

_validators: dict[str, Any] = {}


class ValidationError(Exception):
    """
    Document doesn't match its schema.

    message/path describe the first violation in path order; problems holds
    every violation as "path: message".
    """

    def __init__(self, schema_name: str, message: str, path: str | None = None,
                 problems: list[str] | None = None):
        self.schema_name = schema_name
        self.path = path
        self.problems = problems or []
        text = message if path is None else f"{path}: {message}"
        extra = len(self.problems) - 1
        if extra > 0:
            text += f" (and {extra} more)"
        super().__init__(text)


def _dotted(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def get_validator(schema_name: str):
    """Compiled validator for a schema, built on first use."""
    validator = _validators.get(schema_name)
    if validator is not None:
        return validator

    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    try:
        schema = json.loads(schema_path.read_text())
    except FileNotFoundError:
        raise ValidationError(schema_name, f"Schema file not found: {schema_path}") from None
    except json.JSONDecodeError as e:
        raise ValidationError(schema_name, f"Schema is not valid JSON: {e}") from None

    cls = validator_for(schema)
    cls.check_schema(schema)
    validator = cls(schema)
    _validators[schema_name] = validator
    return validator


def validate(data: Any, schema_name: str) -> None:
    """
    Validate data against a named schema.

    Raises:
        ValidationError: If validation fails; path is the dotted key path of
            the first violation
    """
    errors = sorted(
        get_validator(schema_name).iter_errors(data),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    if not errors:
        return

    first = errors[0]
    problems = [f"{_dotted(e)}: {e.message}" for e in errors]
    raise ValidationError(schema_name, first.message, _dotted(first), problems)
