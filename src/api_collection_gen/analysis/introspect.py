"""Controller and type introspection.

Resolves dotted references (``package.module``, ``package.module.Class``,
``package.module:attr``) to loaded Python objects and reads what the
analyzers need from them: parameter lists, literal source text and
validation rule accessors.
"""

import importlib
import inspect
import logging
import typing
from typing import Any

from pydantic import BaseModel

from api_collection_gen.errors import AnalysisError

logger = logging.getLogger(__name__)

RULES_ACCESSOR = "rules"
MIDDLEWARE_ENTRYPOINTS = ("handle", "dispatch", "__call__")
_BOUND_NAMES = {"self", "cls"}


class ParameterInfo(BaseModel):
    """A single parameter of a controller action."""

    name: str
    declared_type: Any = None
    optional: bool
    default: Any = None


class TypeIntrospection:
    """Narrow reflection over one class.

    Lists its methods and invokes a zero-argument accessor without running
    the class constructor.
    """

    def __init__(self, cls: type):
        self.cls = cls

    def list_methods(self) -> list[str]:
        names = []
        for name in dir(self.cls):
            try:
                attr = inspect.getattr_static(self.cls, name)
            except AttributeError:
                continue
            if isinstance(attr, (staticmethod, classmethod)) or inspect.isfunction(attr):
                names.append(name)
        return names

    def has_method(self, name: str) -> bool:
        return name in self.list_methods()

    def try_invoke_static_or_bypassed(self, name: str) -> Any:
        """Call ``name`` on the class, falling back to its immediate parent.

        Static and class methods are called directly. Instance methods are
        called on an instance created with ``cls.__new__`` so ``__init__``
        never runs. Raises AnalysisError when neither the class nor its
        parent yields a result.
        """
        try:
            return self._invoke(self.cls, name)
        except Exception as first:
            parent = self.cls.__mro__[1] if len(self.cls.__mro__) > 1 else None
            if parent is None or parent is object or not TypeIntrospection(parent).has_method(name):
                raise AnalysisError(f"Cannot invoke {self.cls.__qualname__}.{name}(): {first}") from first
            logger.debug("Retrying %s() on parent %s", name, parent.__qualname__)
            try:
                return self._invoke(parent, name)
            except Exception as second:
                raise AnalysisError(
                    f"Cannot invoke {name}() on {self.cls.__qualname__} or {parent.__qualname__}: {second}"
                ) from second

    @staticmethod
    def _invoke(cls: type, name: str) -> Any:
        attr = inspect.getattr_static(cls, name)
        if isinstance(attr, (staticmethod, classmethod)):
            return getattr(cls, name)()
        instance = cls.__new__(cls)
        return getattr(instance, name)()


class ControllerIntrospector:
    """Reads parameters, source text and rule accessors of loaded code."""

    def resolve(self, identifier: str | None) -> Any:
        """Import the object named by a dotted path; None when not loadable.

        Bare words such as ``auth`` or ``throttle:60,1`` are middleware
        aliases, not import paths, and are never imported.
        """
        if not identifier:
            return None
        if ":" in identifier:
            module_name, _, attr_path = identifier.partition(":")
            if not module_name or not attr_path or not attr_path.replace(".", "").isidentifier():
                return None
            return self._load(module_name, attr_path.split("."))
        if "." not in identifier:
            return None
        return self._import_path(identifier)

    def _import_path(self, path: str) -> Any:
        parts = path.split(".")
        for split in range(len(parts), 0, -1):
            obj = self._load(".".join(parts[:split]), parts[split:])
            if obj is not None:
                return obj
        return None

    def _load(self, module_name: str, attrs: list[str]) -> Any:
        try:
            obj = importlib.import_module(module_name)
        except ImportError:
            return None
        except Exception as e:
            logger.warning("Importing %s failed: %s", module_name, e)
            return None
        for attr in attrs:
            obj = getattr(obj, attr, None)
            if obj is None:
                return None
        return obj

    def resolve_action(self, controller: str | None, action: str | None):
        """Return the undecorated callable for controller.action, or None."""
        if not controller or not action:
            return None
        owner = self.resolve(controller) if ":" in controller else self._import_path(controller)
        if owner is None:
            return None
        func = getattr(owner, action, None)
        if func is None or not callable(func):
            return None
        return inspect.unwrap(func)

    def parameters(self, controller: str | None, action: str | None) -> list[ParameterInfo]:
        func = self.resolve_action(controller, action)
        if func is None:
            return []
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError) as e:
            logger.warning("Cannot read signature of %s.%s: %s", controller, action, e)
            return []
        hints = _type_hints(func)

        params = []
        for param in signature.parameters.values():
            if param.name in _BOUND_NAMES:
                continue
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            annotation = hints.get(param.name, param.annotation)
            optional = param.default is not param.empty
            params.append(
                ParameterInfo(
                    name=param.name,
                    declared_type=None if annotation is param.empty else annotation,
                    optional=optional,
                    default=param.default if optional else None,
                )
            )
        return params

    def source_text(self, controller: str | None, action: str | None) -> str:
        """Literal source of controller.action, or "" when unavailable."""
        func = self.resolve_action(controller, action)
        if func is None:
            return ""
        return self.object_source(func)

    def object_source(self, obj: Any) -> str:
        try:
            return inspect.getsource(inspect.unwrap(obj))
        except (OSError, TypeError) as e:
            logger.debug("No source available for %r: %s", obj, e)
            return ""

    def has_rules_accessor(self, cls: Any) -> bool:
        return inspect.isclass(cls) and callable(getattr(cls, RULES_ACCESSOR, None))

    def invoke_rules_accessor(self, cls: type) -> Any:
        """Call ``cls.rules()`` without constructing cls. Raises AnalysisError."""
        return TypeIntrospection(cls).try_invoke_static_or_bypassed(RULES_ACCESSOR)

    def find_validator_type(self, controller: str | None, action: str | None) -> type | None:
        """First action parameter typed with a rules accessor or a pydantic model."""
        for param in self.parameters(controller, action):
            cls = param.declared_type
            if self.has_rules_accessor(cls):
                return cls
            if inspect.isclass(cls) and issubclass(cls, BaseModel):
                return cls
        return None

    def entrypoint(self, obj: Any):
        """The request-handling callable of a middleware class or function."""
        if inspect.isclass(obj):
            for name in MIDDLEWARE_ENTRYPOINTS:
                try:
                    attr = inspect.getattr_static(obj, name)
                except AttributeError:
                    continue
                if inspect.isfunction(attr):
                    return attr
            return None
        if inspect.isfunction(obj) or inspect.ismethod(obj):
            return obj
        return None


def _type_hints(func) -> dict:
    try:
        return typing.get_type_hints(func)
    except Exception as e:
        logger.debug("Unresolvable annotations on %r: %s", func, e)
        return {}
