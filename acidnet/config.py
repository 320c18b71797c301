"""Named, typed configuration values that can be loaded from YAML."""

from __future__ import annotations

import itertools
import logging
import re
import threading
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, Union

import yaml

from .lexical_cast import parse_bool

_log = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[Any, Any], None]

_VALID_NAME = re.compile(r"[a-z0-9._]*")
_MISSING = object()


def _load_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid yaml: {exc}") from exc


def _default_converter(template: Any) -> Callable[[str], Any]:
    """Build a parser that turns text into a value shaped like ``template``."""
    if isinstance(template, bool):
        return parse_bool
    if isinstance(template, int):
        return lambda text: int(text.strip())
    if isinstance(template, float):
        return lambda text: float(text.strip())
    if isinstance(template, str):
        return str
    if isinstance(template, (list, tuple, set, frozenset)):
        kind = type(template)

        def parse_sequence(text: str) -> Any:
            loaded = _load_yaml(text)
            if loaded is None:
                loaded = []
            if not isinstance(loaded, list):
                raise ValueError(f"expected a sequence, got {text!r}")
            return kind(loaded)

        return parse_sequence
    if isinstance(template, dict):
        def parse_mapping(text: str) -> Any:
            loaded = _load_yaml(text)
            if loaded is None:
                loaded = {}
            if not isinstance(loaded, dict):
                raise ValueError(f"expected a mapping, got {text!r}")
            return loaded

        return parse_mapping
    return _load_yaml


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return yaml.safe_dump(sorted(value), default_flow_style=False).rstrip("\n")
    if isinstance(value, (list, tuple)):
        return yaml.safe_dump(list(value), default_flow_style=False).rstrip("\n")
    if isinstance(value, dict):
        return yaml.safe_dump(value, default_flow_style=False).rstrip("\n")
    return str(value)


class ConfigVar(Generic[T]):
    """A named configuration value with change listeners."""

    def __init__(self, name: str, default: T, description: str = "",
                 converter: Optional[Callable[[str], T]] = None) -> None:
        self.name = name.lower()
        self.description = description
        self._value = default
        self._converter = converter or _default_converter(default)
        self._listeners: Dict[int, Listener] = {}
        self._keys = itertools.count()
        self._lock = threading.RLock()

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        with self._lock:
            old_value = self._value
            if old_value == new_value:
                return
            listeners = list(self._listeners.values())
        for listener in listeners:
            listener(old_value, new_value)
        with self._lock:
            self._value = new_value

    @property
    def type_name(self) -> str:
        return type(self._value).__name__

    def from_string(self, text: str) -> None:
        """Parse ``text`` and set it as the value; ValueError if it does not parse."""
        try:
            parsed = self._converter(text)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"ConfigVar {self.name}: cannot convert {text!r} to {self.type_name}") from exc
        self.value = parsed

    def to_string(self) -> str:
        return _format_value(self.value)

    def add_listener(self, callback: Listener) -> int:
        """Register ``callback(old, new)``; returns a key for removing it."""
        with self._lock:
            key = next(self._keys)
            self._listeners[key] = callback
            return key

    def remove_listener(self, key: int) -> None:
        with self._lock:
            self._listeners.pop(key, None)

    def clear_listeners(self) -> None:
        with self._lock:
            self._listeners.clear()

    def __repr__(self) -> str:
        return f"ConfigVar({self.name!r}, {self._value!r})"


def _list_members(prefix: str, node: yaml.Node) -> Iterator[Tuple[str, yaml.Node]]:
    if _VALID_NAME.fullmatch(prefix) is None:
        _log.error("config invalid name: %s", prefix)
        return
    yield prefix, node
    if isinstance(node, yaml.MappingNode):
        for key_node, value_node in node.value:
            key = str(key_node.value)
            name = key if not prefix else f"{prefix}.{key}"
            yield from _list_members(name, value_node)


class Config:
    """A registry of configuration variables keyed by dotted lower-case names."""

    def __init__(self) -> None:
        self._vars: Dict[str, ConfigVar[Any]] = {}
        self._lock = threading.RLock()

    def lookup(self, name: str, default: Any = _MISSING,
               description: str = "") -> Optional[ConfigVar[Any]]:
        """Return the variable ``name``, creating it with ``default`` if absent.

        Without a default, a missing name gives None. A name that exists with a
        value of another type raises TypeError; an invalid name raises ValueError.
        """
        with self._lock:
            existing = self._vars.get(name)
            if existing is not None:
                if default is not _MISSING and type(existing.value) is not type(default):
                    raise TypeError(
                        f"config {name} exists with type {existing.type_name}, "
                        f"not {type(default).__name__}")
                return existing
            if default is _MISSING:
                return None
            if _VALID_NAME.fullmatch(name) is None:
                raise ValueError(f"invalid config name: {name}")
            var = ConfigVar(name, default, description)
            self._vars[name] = var
            return var

    def lookup_base(self, name: str) -> Optional[ConfigVar[Any]]:
        with self._lock:
            return self._vars.get(name)

    def load_from_yaml(self, root: Union[yaml.Node, str, Any]) -> None:
        """Apply a YAML document (node, text or plain data) to the known variables."""
        if isinstance(root, str):
            root = yaml.compose(root)
        elif root is not None and not isinstance(root, yaml.Node):
            root = yaml.compose(yaml.safe_dump(root))
        if root is None:
            return
        members: List[Tuple[str, yaml.Node]] = list(_list_members("", root))
        for key, node in members:
            if not key:
                continue
            var = self.lookup_base(key.lower())
            if var is None:
                continue
            if isinstance(node, yaml.ScalarNode):
                text = node.value
            else:
                text = yaml.serialize(node)
            try:
                var.from_string(text)
            except ValueError as exc:
                _log.error("%s", exc)

    def load_from_file(self, path: str) -> None:
        with open(path, encoding="utf-8") as handle:
            self.load_from_yaml(yaml.compose(handle))

    def visit(self, callback: Callable[[ConfigVar[Any]], None]) -> None:
        with self._lock:
            variables = list(self._vars.values())
        for var in variables:
            callback(var)


default_config = Config()