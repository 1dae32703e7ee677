"""
Settings — tree-shaped configuration values with plugin-derived attributes.

A settings node maps attribute names to scalars, nested nodes or
sequences. Attributes that were never set explicitly may still be derived
by the plugins registered on the owning provider; explicit values always
win over derived ones.
"""
from dataclasses import dataclass
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, Callable, Optional, Union

import orjson
import yaml

from .exceptions import AttributeMissing, SettingsFrozen
from .tree import Tree


class Skip:
    """Plugin result meaning "not my attribute, ask the next plugin"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'SKIP'

    def __bool__(self) -> bool:
        return False


SKIP = Skip()


@dataclass(frozen=True)
class Found:
    """Plugin result carrying a derived value (which may be None)."""
    value: Any


PluginResult = Union[Found, Skip]
Plugin = Callable[["Settings", str], PluginResult]

_MISSING = object()


def _lower(value: Any) -> Any:
    """Lower settings, sequences and mappings to plain Python values."""
    if isinstance(value, Settings):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {str(k): _lower(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_lower(v) for v in value]
    return value


def _freeze_value(value: Any) -> Any:
    if isinstance(value, Settings):
        return value.deep_freeze()
    if isinstance(value, (list, tuple)):
        return tuple(_freeze_value(v) for v in value)
    return value


class Settings(MutableMapping[str, Any]):
    """Configuration node with attribute-style and dict-style access.

    ``settings.foo``, ``settings['foo']`` and ``settings.get('foo')`` all
    return the explicit value of ``foo`` if it was set, otherwise the
    first value derived by a plugin, otherwise raise
    :class:`AttributeMissing`. ``get_optional('foo')`` returns None
    instead of raising.

    Attribute-style access cannot reach keys shadowed by methods of this
    class (``items``, ``keys``, ``paths`` ...); use item access for those.

    A node is mutable until :meth:`freeze` or :meth:`deep_freeze` is
    called; afterwards every mutation raises :class:`SettingsFrozen`.
    """

    # Internal attributes that are never stored as settings
    _internal_attrs = frozenset({
        '_table', '_frozen', '_provider', 'name_prefix'
    })

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        *,
        name_prefix: Optional[str] = None,
        provider: Optional[Any] = None,
    ) -> None:
        object.__setattr__(self, '_table', {})
        object.__setattr__(self, '_frozen', False)
        object.__setattr__(self, '_provider', provider)
        object.__setattr__(self, 'name_prefix', name_prefix)
        if data:
            for key, value in data.items():
                self._table[str(key)] = self._convert(value)

    # --- Construction ---

    @classmethod
    def build(cls, name: Optional[str], value: Any, provider: Optional[Any] = None) -> Any:
        """Build settings from a parsed YAML value.

        Mappings become nodes carrying ``name`` as their ``name_prefix``,
        sequences are built element-wise and scalars are returned as is.
        """
        if isinstance(value, Settings):
            value = value.to_dict()
        if isinstance(value, Mapping):
            return cls(value, name_prefix=name, provider=provider)
        if isinstance(value, (list, tuple)):
            return [cls.build(name, item, provider) for item in value]
        return value

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name_prefix: Optional[str] = None,
                  provider: Optional[Any] = None) -> "Settings":
        return cls(data, name_prefix=name_prefix, provider=provider)

    def _convert(self, value: Any) -> Any:
        return type(self).build(self.name_prefix, _lower(value), self._provider)

    def _check_frozen(self) -> None:
        if self._frozen:
            raise SettingsFrozen(
                f"can't modify frozen {type(self).__name__}"
            )

    # --- Attribute resolution ---

    def has(self, name: str) -> bool:
        """True if ``name`` was set explicitly (plugins are not consulted)."""
        return str(name) in self._table

    attribute_set = has

    def attribute_get(self, name: str) -> Any:
        name = str(name)
        if name in self._table:
            return self._table[name]
        result = self._apply_plugins(name)
        if isinstance(result, Found):
            return result.value
        raise AttributeMissing(f"no attribute named {name!r}")

    def get(self, name: str, default: Any = _MISSING) -> Any:
        """Return attribute ``name``.

        Without ``default`` a missing attribute raises
        :class:`AttributeMissing`; with it, ``default`` is returned.
        """
        try:
            return self.attribute_get(name)
        except AttributeMissing:
            if default is _MISSING:
                raise
            return default

    def get_optional(self, name: str) -> Any:
        """Return attribute ``name`` or None when it is missing."""
        try:
            return self.attribute_get(name)
        except AttributeMissing:
            return None

    def set(self, name: str, value: Any) -> None:
        self._check_frozen()
        self._table[str(name)] = self._convert(value)

    def _apply_plugins(self, name: str) -> PluginResult:
        if self._provider is None:
            return SKIP
        return self._provider.apply_plugins(self, name)

    def attribute_names(self) -> list[str]:
        return list(self._table)

    def attribute_values(self) -> list[Any]:
        return list(self._table.values())

    @property
    def empty(self) -> bool:
        return not self._table

    # --- Bulk updates ---

    def attributes_update(self, other: Mapping[str, Any]) -> "Settings":
        """Overwrite this node's top-level attributes with those of ``other``."""
        self._check_frozen()
        for key, value in other.items():
            self._table[str(key)] = self._convert(value)
        return self

    def attributes_update_if_nil(self, other: Mapping[str, Any]) -> "Settings":
        """Copy attributes of ``other`` that are not explicitly set here.

        Explicitly set attributes are kept even when their value is None.
        """
        self._check_frozen()
        for key, value in other.items():
            key = str(key)
            if key not in self._table:
                self._table[key] = self._convert(value)
        return self

    def replace_attributes(self, data: Mapping[str, Any]) -> "Settings":
        self._check_frozen()
        self._table.clear()
        return self.attributes_update(data)

    # --- Freezing ---

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Settings":
        object.__setattr__(self, '_frozen', True)
        return self

    def deep_freeze(self) -> "Settings":
        """Freeze this node, all nested nodes and all sequences (as tuples)."""
        for key, value in self._table.items():
            self._table[key] = _freeze_value(value)
        return self.freeze()

    def copy(self) -> "Settings":
        """Return a mutable deep copy of this node."""
        return type(self).build(self.name_prefix, self.to_dict(), self._provider)

    __copy__ = copy

    def __deepcopy__(self, memo: dict) -> "Settings":
        return self.copy()

    # --- Serialization ---

    def to_dict(self) -> dict[str, Any]:
        """Lower this node to nested dicts, lists and scalars."""
        return {key: _lower(value) for key, value in self._table.items()}

    to_mapping = to_dict

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            self.to_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def to_json(self) -> str:
        return orjson.dumps(self.to_dict()).decode('utf-8')

    def to_tree(self, utf8: Optional[bool] = None) -> Tree:
        return Tree.convert(self.name_prefix or '', self, utf8=utf8)

    def to_text_tree(self, utf8: Optional[bool] = None) -> str:
        return str(self.to_tree(utf8=utf8))

    def paths(
        self,
        separator: str = '.',
        prefix: Optional[str] = None,
        result: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Flatten this node into ``{path: leaf_value}``.

        Paths start with ``name_prefix`` (if any), join keys with
        ``separator`` and index sequence elements as ``key[i]``.
        """
        if prefix is None:
            prefix = self.name_prefix or ''
        if result is None:
            result = {}
        for key, value in self._table.items():
            path = f"{prefix}{separator}{key}" if prefix else key
            if isinstance(value, Settings):
                value.paths(separator, path, result)
            elif isinstance(value, (list, tuple)):
                for index, item in enumerate(value):
                    sub_path = f"{path}[{index}]"
                    if isinstance(item, Settings):
                        item.paths(separator, sub_path, result)
                    else:
                        result[sub_path] = item
            else:
                result[path] = value
        return result

    def attributes_list(self, pair_sep: str = ' = ', path_sep: str = '.') -> str:
        """Render :meth:`paths` as one ``path = value`` line per leaf."""
        return ''.join(
            f"{path}{pair_sep}{value!r}\n"
            for path, value in self.paths(path_sep).items()
        )

    # --- Magic Methods ---

    def __repr__(self) -> str:
        return f'<Settings [{self.name_prefix}] {self.to_dict()!r}>'

    def __str__(self) -> str:
        if self.empty:
            return type(self).__name__
        return self.to_yaml()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return self.to_dict() == _lower(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __len__(self) -> int:
        return len(self._table)

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __contains__(self, key: object) -> bool:
        return str(key) in self._table

    def __getitem__(self, key: str) -> Any:
        return self.attribute_get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self._check_frozen()
        key = str(key)
        if key not in self._table:
            raise AttributeMissing(f"no attribute named {key!r}")
        del self._table[key]

    def __getattr__(self, key: str) -> Any:
        # Avoid infinite recursion for internal and dunder lookups
        if key.startswith('_'):
            raise AttributeError(key)
        return self.attribute_get(key)

    def __setattr__(self, key: str, value: Any) -> None:
        if key in self._internal_attrs or key.startswith('_'):
            if key == 'name_prefix':
                self._check_frozen()
            object.__setattr__(self, key, value)
        else:
            self.set(key, value)

    def __delattr__(self, key: str) -> None:
        if key in self._internal_attrs or key.startswith('_'):
            object.__delattr__(self, key)
        else:
            del self[key]
