"""Validation rule resolution and example value synthesis.

Rules come from two places and are merged into one ordered field -> rule
string mapping (pipe-delimited tokens such as ``required|string|max:50``):

1. Structured metadata: a request validator type exposing ``rules()``, or
   a pydantic model whose fields are translated into rule strings.
2. Literal source scanning of the controller action for
   ``<obj>.validate({...})`` and ``Validator.make(data, {...})`` calls.

Source scanning is a textual heuristic. Only literal ``'field': 'rules'``
pairs are seen; rule dicts built from variables, comprehensions or helper
calls are silently omitted.
"""

import datetime
import enum
import inspect
import logging
import re
import types
import typing
from decimal import Decimal
from typing import Any, Union

from pydantic import BaseModel

from api_collection_gen.analysis.introspect import ControllerIntrospector
from api_collection_gen.errors import AnalysisError

logger = logging.getLogger(__name__)

ValidationRuleSet = dict[str, str]
ExampleValue = Union[str, int, float, bool, list, None]

VALIDATE_CALL = re.compile(r"\.validate\s*\(\s*\{(.*?)\}\s*\)", re.DOTALL)
FACTORY_CALL = re.compile(r"Validator\.make\s*\([^,]+,\s*\{(.*?)\}\s*\)", re.DOTALL)
RULE_PAIR = re.compile(r"""['"]([\w.*]+)['"]\s*:\s*['"]([^'"]+)['"]""")

REQUIRED_SENTINEL = "required_value"
FILLER_CHAR = "a"


def normalize_rules(raw: Any) -> ValidationRuleSet:
    """Coerce a rules() result into field -> pipe-delimited rule string."""
    if not isinstance(raw, dict):
        return {}
    normalized: ValidationRuleSet = {}
    for field, rule in raw.items():
        if isinstance(rule, str):
            normalized[str(field)] = rule
        elif isinstance(rule, (list, tuple)):
            normalized[str(field)] = "|".join(str(r) for r in rule)
    return normalized


def parse_rule_literals(text: str) -> ValidationRuleSet:
    """Extract ``'field': 'rule|rule'`` literal pairs from a dict body."""
    return {field: rule for field, rule in RULE_PAIR.findall(text)}


def scan_source_rules(source: str) -> ValidationRuleSet:
    """Find literal validation rules in a block of source code."""
    rules: ValidationRuleSet = {}
    if not source:
        return rules
    for pattern in (VALIDATE_CALL, FACTORY_CALL):
        for body in pattern.findall(source):
            rules.update(parse_rule_literals(body))
    return rules


# -- pydantic models ----------------------------------------------------------

_SCALAR_TOKENS = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "numeric"),
    (Decimal, "numeric"),
    (datetime.date, "date"),
    (str, "string"),
)


def _strip_optional(annotation: Any) -> tuple[Any, bool]:
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        nullable = len(args) < len(typing.get_args(annotation))
        if len(args) == 1:
            return args[0], nullable
    return annotation, False


def _type_tokens(annotation: Any) -> list[str]:
    origin = typing.get_origin(annotation)
    if origin is typing.Literal:
        return ["string", "in:" + ",".join(str(v) for v in typing.get_args(annotation))]
    if origin in (list, tuple, set, frozenset):
        return ["array"]
    if inspect.isclass(annotation):
        if issubclass(annotation, enum.Enum):
            return ["in:" + ",".join(str(m.value) for m in annotation)]
        type_name = annotation.__name__
        if type_name == "EmailStr":
            return ["email"]
        if type_name.endswith("Url"):
            return ["url"]
        if issubclass(annotation, (list, tuple, set, frozenset)):
            return ["array"]
        for base, token in _SCALAR_TOKENS:
            if issubclass(annotation, base):
                return [token]
    return []


def _constraint_tokens(metadata: list) -> list[str]:
    tokens = []
    for item in metadata:
        for attr, prefix in (("min_length", "min"), ("ge", "min"), ("max_length", "max"), ("le", "max")):
            value = getattr(item, attr, None)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                tokens.append(f"{prefix}:{int(value)}")
    return tokens


def rules_from_model(model: type[BaseModel]) -> ValidationRuleSet:
    """Translate pydantic model fields into rule strings."""
    rules: ValidationRuleSet = {}
    for name, field in model.model_fields.items():
        annotation, nullable = _strip_optional(field.annotation)
        tokens = []
        if field.is_required():
            tokens.append("required")
        if nullable:
            tokens.append("nullable")
        type_tokens = _type_tokens(annotation)
        choice = [t for t in type_tokens if t.startswith("in:")]
        tokens.extend(t for t in type_tokens if not t.startswith("in:"))
        tokens.extend(_constraint_tokens(field.metadata))
        tokens.extend(choice)
        rules[field.alias or name] = "|".join(tokens)
    return rules


# -- example synthesis --------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_int(arg: str) -> int | None:
    try:
        return int(float(arg))
    except ValueError:
        return None


def synthesize_example(rule: str | list | tuple, today: datetime.date | None = None) -> ExampleValue:
    """Derive a deterministic example value from a validation rule string.

    >>> synthesize_example("required|integer|min:5")
    5
    >>> synthesize_example("string|in:red,green,blue")
    'red'
    """
    tokens = rule.split("|") if isinstance(rule, str) else [str(r) for r in rule]
    example: ExampleValue = None
    required = False

    for token in tokens:
        name, _, arg = token.strip().partition(":")
        name = name.lower()

        if name == "required":
            required = True
        elif name == "email":
            example = "example@email.com"
        elif name == "numeric":
            if example is None:
                example = 0
        elif name == "integer":
            if example is None:
                example = 1
        elif name == "string":
            if example is None:
                example = "string"
        elif name == "boolean":
            example = True
        elif name == "array":
            example = []
        elif name == "date":
            example = (today or datetime.date.today()).isoformat()
        elif name == "url":
            example = "https://example.com"
        elif name == "ip":
            example = "192.168.1.1"
        elif name == "json":
            example = '{"key":"value"}'
        elif name == "min":
            n = _parse_int(arg)
            if n is None:
                continue
            if _is_number(example):
                example = n
            elif isinstance(example, str):
                example = FILLER_CHAR * n
        elif name == "max":
            n = _parse_int(arg)
            if n is not None and isinstance(example, str) and len(example) > n:
                example = example[:n]
        elif name == "in":
            if arg:
                example = arg.split(",")[0]
        elif name == "size":
            n = _parse_int(arg)
            if n is not None:
                example = FILLER_CHAR * n

    if example is None:
        return REQUIRED_SENTINEL if required else ""
    return example


def build_example_body(rules: ValidationRuleSet, today: datetime.date | None = None) -> dict[str, ExampleValue]:
    return {field: synthesize_example(rule, today=today) for field, rule in rules.items()}


class ValidationRuleResolver:
    """Produces the ValidationRuleSet for an endpoint."""

    def __init__(self, introspector: ControllerIntrospector | None = None):
        self.introspector = introspector or ControllerIntrospector()

    def resolve(
        self,
        controller: str | None,
        action: str | None,
        validator_type: type | None = None,
    ) -> ValidationRuleSet:
        """Merge metadata rules with rules scanned from the action source.

        Textual rules are applied last and overwrite metadata rules for the
        same field.
        """
        rules: ValidationRuleSet = {}
        if validator_type is not None:
            rules.update(self.from_validator(validator_type))
        if controller and action:
            rules.update(scan_source_rules(self.introspector.source_text(controller, action)))
        return rules

    def from_validator(self, validator_type: type) -> ValidationRuleSet:
        """Rules from a ``rules()`` accessor or pydantic model. Never raises."""
        if self.introspector.has_rules_accessor(validator_type):
            try:
                return normalize_rules(self.introspector.invoke_rules_accessor(validator_type))
            except AnalysisError as e:
                logger.warning("Skipping rules of %s: %s", getattr(validator_type, "__qualname__", validator_type), e)
                return {}
        if inspect.isclass(validator_type) and issubclass(validator_type, BaseModel):
            return rules_from_model(validator_type)
        return {}

    def from_source(self, obj: Any) -> ValidationRuleSet:
        """Rules scanned from any object's source, e.g. a middleware handler."""
        return scan_source_rules(self.introspector.object_source(obj))
