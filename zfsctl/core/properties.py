"""Declarative, typed accessors for ZFS dataset properties.

A property is declared on a dataset class as a descriptor:

    class Dataset:
        used = Property("size")
        atime = Property("boolean", edit=True, inherit=True)

Reading the attribute fetches the raw text value through the owner's
``__getitem__`` (``zfs get``) and parses it according to the kind; assigning
formats the value and writes it through ``__setitem__`` (``zfs set``).
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from zfsctl.core.errors import PropertyValueError

# Placeholder zfs prints for values that do not apply to a dataset
NOT_APPLICABLE = "-"

_TRUE = ("on", "yes")
_FALSE = ("off", "no")


def _invalid(prop: "Property", raw: str, expected: str) -> PropertyValueError:
    return PropertyValueError(
        f"{prop.name} has value {raw!r}, which is not {expected}"
    )


# Parsers: raw text -> python value

def _parse_size(prop, raw):
    if raw == NOT_APPLICABLE or raw in prop.values:
        return None
    try:
        return int(raw)
    except ValueError:
        raise _invalid(prop, raw, "a size in bytes")


def _parse_integer(prop, raw):
    try:
        return int(raw)
    except ValueError:
        pass
    if raw in prop.values:
        return raw
    if raw == NOT_APPLICABLE:
        return None
    raise _invalid(prop, raw, "an integer")


def _parse_float(prop, raw):
    if raw == NOT_APPLICABLE:
        return None
    try:
        return float(raw.rstrip("x"))
    except ValueError:
        raise _invalid(prop, raw, "a number")


def _parse_boolean(prop, raw):
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    if raw == NOT_APPLICABLE:
        return None
    # extra values such as canmount=noauto or compression=lz4
    return raw


def _parse_enum(prop, raw):
    if raw == NOT_APPLICABLE:
        return None
    if raw in prop.values:
        return raw
    raise _invalid(prop, raw, f"one of {', '.join(map(str, prop.values))}")


def _parse_date(prop, raw):
    if raw == NOT_APPLICABLE:
        return None
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except ValueError:
        raise _invalid(prop, raw, "a timestamp")


def _parse_pathname(prop, raw):
    if raw == NOT_APPLICABLE:
        return None
    if raw in prop.values:
        return raw
    return Path(raw)


def _parse_string(prop, raw):
    if raw == NOT_APPLICABLE:
        return None
    return raw


def _parse_snapshot(prop, raw):
    if raw in ("", NOT_APPLICABLE):
        return None
    from zfsctl.models.dataset import dataset
    return dataset(raw)


# Formatters: python value -> text for `zfs set`. Kinds without one are read-only.

def _format_size(prop, value):
    if value is None:
        return "none"
    if isinstance(value, str):
        return value
    return str(int(value))


def _format_integer(prop, value):
    if isinstance(value, str) and value in prop.values:
        return value
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{prop.name} must be an integer, got {value!r}")
    if prop.values and all(isinstance(v, int) for v in prop.values) and number not in prop.values:
        raise ValueError(
            f"{prop.name} must be one of {', '.join(map(str, prop.values))}, got {number}"
        )
    return str(number)


def _format_float(prop, value):
    return str(value)


def _format_boolean(prop, value):
    if value is True:
        return "on"
    if value is False:
        return "off"
    if isinstance(value, str) and (value in _TRUE + _FALSE or value in prop.values):
        return value
    raise ValueError(f"{prop.name} must be a boolean or one of {list(prop.values)}, got {value!r}")


def _format_enum(prop, value):
    if value in prop.values:
        return value
    raise ValueError(f"{prop.name} must be one of {', '.join(map(str, prop.values))}, got {value!r}")


def _format_text(prop, value):
    return str(value)


KINDS: Dict[str, Tuple[Callable, Optional[Callable]]] = {
    "size": (_parse_size, _format_size),
    "integer": (_parse_integer, _format_integer),
    "float": (_parse_float, _format_float),
    "boolean": (_parse_boolean, _format_boolean),
    "enum": (_parse_enum, _format_enum),
    "date": (_parse_date, None),
    "pathname": (_parse_pathname, _format_text),
    "string": (_parse_string, _format_text),
    "snapshot": (_parse_snapshot, None),
}


class Property:
    """Descriptor exposing one ZFS property as a typed attribute.

    Args:
        kind: One of KINDS
        edit: Property can be changed with `zfs set`
        inherit: Property can be reset with `zfs inherit`
        create_only: Property can only be given when the dataset is created
        values: Domain of the property (enum members or extra keywords)
        name: ZFS property name when it differs from the attribute name
    """

    def __init__(
        self,
        kind: str,
        edit: bool = False,
        inherit: bool = False,
        create_only: bool = False,
        values: Tuple = (),
        name: Optional[str] = None,
    ):
        if kind not in KINDS:
            raise ValueError(f"Unknown property kind '{kind}'")
        self.kind = kind
        self.edit = edit
        self.inherit = inherit
        self.create_only = create_only
        self.values = tuple(values)
        self.name = name
        self._parse, self._format = KINDS[kind]

    def __set_name__(self, owner, attr):
        if self.name is None:
            self.name = attr
        registry = owner.__dict__.get("property_defs")
        if registry is None:
            registry = dict(getattr(owner, "property_defs", {}))
            owner.property_defs = registry
        registry[self.name] = self

    def __repr__(self):
        flags = [f for f in ("edit", "inherit", "create_only") if getattr(self, f)]
        return f"Property({self.name!r}, {self.kind!r}{''.join(', ' + f for f in flags)})"

    @property
    def writable(self) -> bool:
        """True when the value can be formatted for `zfs set` or `zfs create -o`."""
        return self._format is not None and (self.edit or self.create_only)

    def parse(self, raw: str) -> Any:
        return self._parse(self, raw)

    def format(self, value: Any) -> str:
        if not self.writable:
            raise AttributeError(f"{self.name} is read-only")
        return self._format(self, value)

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return self.parse(instance[self.name])

    def __set__(self, instance, value):
        if self.create_only:
            raise AttributeError(f"{self.name} can only be set when the dataset is created")
        if not self.edit:
            raise AttributeError(f"{self.name} is read-only")
        instance[self.name] = self.format(value)
