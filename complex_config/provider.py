"""
Provider — resolution of named configurations into settings.

For a configuration ``name`` the provider reads ``<config_dir>/<name>.yml``
and ``<config_dir>/<name>.yml.enc`` (decrypted with the first key the
key resolver finds), expands and parses both, overlays the decrypted
top-level keys over the plaintext ones, propagates the ``shared``
section into its siblings, deep-freezes the result and caches it.

The cache computes each name at most once per cache generation, also
under concurrent access. Failed loads are never cached. Changing the key,
the plugins or the deep-freeze flag flushes the cache.

Security Note:
    Never log key material or decrypted configuration. Only log names,
    paths and which kind of key source was used.
"""
import os
import logging
import threading
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .conf import (
    CONFIG_ENV_ENV,
    LEGACY_ENV_ENV,
    DEFAULT_CONFIG_DIR,
    DEFAULT_ENV,
    MASTER_KEY_FILENAME,
    CONFIG_SUFFIX,
    ENCRYPTED_SUFFIX,
    KEY_SUFFIX,
    SHARED_SECTION,
)
from .encryption import (
    EnvelopeCipher,
    KeyResolver,
    KeySource,
    new_key,
    valid_key,
    is_hex_key,
)
from .exceptions import (
    ConfigurationFileMissing,
    ConfigurationSyntaxError,
    EncryptionKeyInvalid,
    EncryptionKeyMissing,
)
from .proxy import Proxy
from .settings import Settings, Plugin, PluginResult, Found, SKIP, _lower
from .templating import Templater, expand_env
from .utils import secure_write

logger = logging.getLogger("complex_config")

PathLike = Union[str, Path]


def _read_text(path: PathLike) -> Optional[str]:
    """Read a file as UTF-8 text, None if it does not exist."""
    try:
        with open(path, 'r', encoding='utf-8') as fp:
            return fp.read()
    except (FileNotFoundError, NotADirectoryError):
        return None


class Provider:
    """Long-lived service resolving configuration names into settings.

    Args:
        config_dir: Directory holding the ``.yml``/``.yml.enc`` files,
            defaults to ``./config``.
        env: Default environment section used by proxies and shortcuts.
        deep_freeze: Freeze loaded settings recursively (default True).
        key: Hex key tried before every other key source.
        master_key_path: Fallback key file, defaults to
            ``<config_dir>/master.key``.
        templater: Callable expanding configuration text before parsing.
    """

    def __init__(
        self,
        config_dir: Optional[PathLike] = None,
        env: Optional[str] = None,
        deep_freeze: bool = True,
        key: Optional[str] = None,
        master_key_path: Optional[PathLike] = None,
        templater: Optional[Templater] = None,
    ):
        self._config_dir = Path(config_dir) if config_dir is not None else None
        self._env = env
        self._deep_freeze = deep_freeze
        self._key = key
        self._master_key_path = Path(master_key_path) if master_key_path else None
        self._templater: Templater = templater or expand_env
        self._plugins: list[Plugin] = []
        self._cache: dict[str, Settings] = {}
        self._generation = 0
        self._lock = threading.Lock()
        # Per-name locks: parallel loads of different names, one load per name
        self._key_locks: dict[str, list] = {}

    def __repr__(self) -> str:
        return (
            f'<Provider [config_dir:{self.config_dir}, env:{self.env}, '
            f'deep_freeze:{self._deep_freeze}]>'
        )

    # --- Properties ---

    @property
    def config_dir(self) -> Path:
        if self._config_dir is None:
            return Path.cwd() / DEFAULT_CONFIG_DIR
        return self._config_dir

    @config_dir.setter
    def config_dir(self, value: Optional[PathLike]) -> None:
        self._config_dir = Path(value) if value is not None else None
        self.flush_cache()

    @property
    def env(self) -> str:
        return (
            self._env
            or os.environ.get(CONFIG_ENV_ENV)
            or os.environ.get(LEGACY_ENV_ENV)
            or DEFAULT_ENV
        )

    @env.setter
    def env(self, value: Optional[str]) -> None:
        self._env = value

    @property
    def deep_freeze(self) -> bool:
        return self._deep_freeze

    @deep_freeze.setter
    def deep_freeze(self, value: bool) -> None:
        self._deep_freeze = bool(value)
        self.flush_cache()

    @property
    def key(self) -> Optional[str]:
        """Key set explicitly in process (not the resolved one, see :meth:`resolve_key`)."""
        return self._key

    @key.setter
    def key(self, value: Optional[str]) -> None:
        self._key = value
        self.flush_cache()

    @property
    def master_key_path(self) -> Path:
        if self._master_key_path is None:
            return self.config_dir / MASTER_KEY_FILENAME
        return self._master_key_path

    @master_key_path.setter
    def master_key_path(self, value: Optional[PathLike]) -> None:
        self._master_key_path = Path(value) if value else None
        self.flush_cache()

    @property
    def templater(self) -> Templater:
        return self._templater

    @templater.setter
    def templater(self, value: Optional[Templater]) -> None:
        self._templater = value or expand_env
        self.flush_cache()

    @property
    def generation(self) -> int:
        """Counter incremented by every cache flush."""
        return self._generation

    # --- Plugins ---

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        return tuple(self._plugins)

    def add_plugin(self, plugin: Plugin) -> "Provider":
        """Register ``plugin`` after the already registered ones.

        Registering the same plugin twice has no effect.
        """
        if plugin not in self._plugins:
            self._plugins.append(plugin)
            self.flush_cache()
        return self

    def remove_plugin(self, plugin: Plugin) -> "Provider":
        if plugin in self._plugins:
            self._plugins.remove(plugin)
            self.flush_cache()
        return self

    def clear_plugins(self) -> "Provider":
        self._plugins.clear()
        self.flush_cache()
        return self

    def apply_plugins(self, settings: Settings, name: str) -> PluginResult:
        """Ask the plugins in order for attribute ``name`` of ``settings``."""
        for plugin in tuple(self._plugins):
            result = plugin(settings, name)
            if isinstance(result, Found):
                return result
            if result is not SKIP:
                raise TypeError(
                    f"plugin {plugin!r} must return Found(value) or SKIP, "
                    f"got {result!r}"
                )
        return SKIP

    # --- Keys ---

    def pathname(self, name: str) -> Path:
        return self.config_dir / f"{name}{CONFIG_SUFFIX}"

    def key_resolver(self) -> KeyResolver:
        return KeyResolver(key=self._key, master_key_path=self.master_key_path)

    def key_source(self, pathname: Optional[PathLike] = None) -> Optional[KeySource]:
        """The first key source yielding a key for ``pathname``, or None."""
        return self.key_resolver().resolve(pathname)

    def resolve_key(self, pathname: Optional[PathLike] = None) -> Optional[str]:
        """Resolved hex key for ``pathname``, or None."""
        source = self.key_source(pathname)
        return source.key if source else None

    def new_key(self) -> str:
        return new_key()

    def valid_key(self, key: str) -> Union[EnvelopeCipher, bool]:
        return valid_key(key)

    # --- Encryption ---

    def decrypt_config(self, pathname: PathLike) -> Optional[str]:
        """Decrypted text of ``<pathname>.enc``, None if that file is missing.

        Raises:
            EncryptionKeyMissing: If the file exists but no key resolves.
            DecryptionFailed: If the key does not decrypt the file.
        """
        enc_pathname = f"{pathname}{ENCRYPTED_SUFFIX}"
        envelope = _read_text(enc_pathname)
        if envelope is None:
            return None
        source = self.key_source(pathname)
        if source is None:
            raise EncryptionKeyMissing(
                f"encryption key for {enc_pathname!r} is missing"
            )
        cipher = EnvelopeCipher(source.key_bytes)
        return cipher.decrypt(envelope).decode('utf-8')

    def encrypt_config(self, pathname: PathLike, text: str) -> str:
        """Encrypt ``text`` with the key resolved for ``pathname``."""
        source = self.key_source(pathname)
        if source is None:
            raise EncryptionKeyMissing(
                f"encryption key for {str(pathname)!r} is missing"
            )
        return EnvelopeCipher(source.key_bytes).encrypt(text)

    # --- Loading ---

    def evaluate(self, text: str, pathname: Optional[PathLike] = None) -> str:
        """Expand templating markup in ``text`` read from ``pathname``."""
        return self._templater(text, pathname)

    def _parse(self, text: str, pathname: PathLike) -> Any:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as err:
            raise ConfigurationSyntaxError.wrap(err, pathname=str(pathname)) from err

    def config(self, pathname: PathLike, name: Optional[str] = None) -> Settings:
        """Read, merge and build the configuration at ``pathname`` (uncached).

        Raises:
            ConfigurationFileMissing: If neither plaintext nor encrypted file exists.
            EncryptionKeyMissing: If only the encrypted file exists and no key resolves.
            ConfigurationSyntaxError: If a payload is not valid YAML.
        """
        pathname = Path(pathname)
        payloads: list[str] = []
        plaintext = _read_text(pathname)
        if plaintext is not None:
            payloads.append(plaintext)
        try:
            decrypted = self.decrypt_config(pathname)
        except EncryptionKeyMissing:
            if not payloads:
                raise
            logger.warning(
                "Encrypted configuration %s%s present but no key found, "
                "using plaintext only", pathname, ENCRYPTED_SUFFIX
            )
        else:
            if decrypted is not None:
                payloads.append(decrypted)
        if not payloads:
            raise ConfigurationFileMissing(
                f"configuration file {str(pathname)!r} is missing"
            )

        trees = []
        for payload in payloads:
            tree = self._parse(self.evaluate(payload, pathname), pathname)
            if tree is None:
                tree = {}
            if not isinstance(tree, dict):
                raise ConfigurationSyntaxError(
                    f"configuration {str(pathname)!r} must contain a mapping, "
                    f"got {type(tree).__name__}",
                    pathname=str(pathname),
                )
            trees.append(tree)

        settings = Settings.build(name, trees[0], provider=self)
        for tree in trees[1:]:
            settings.attributes_update(tree)
        self._propagate_shared(settings)
        if self._deep_freeze:
            settings.deep_freeze()
        return settings

    def _propagate_shared(self, settings: Settings) -> None:
        if not settings.has(SHARED_SECTION):
            return
        shared = settings[SHARED_SECTION]
        if not isinstance(shared, Settings):
            return
        for key, value in list(settings.items()):
            if key == SHARED_SECTION:
                continue
            if isinstance(value, Settings):
                value.attributes_update_if_nil(shared)
            elif value is None:
                settings[key] = Settings.build(settings.name_prefix, shared.to_dict(), self)

    def __getitem__(self, name: str) -> Settings:
        """Cached :meth:`config` of configuration ``name``."""
        with self._lock:
            if name in self._cache:
                return self._cache[name]
            # [lock, number of callers holding or waiting for it]
            entry = self._key_locks.setdefault(name, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                # Another caller may have loaded it while we waited
                with self._lock:
                    if name in self._cache:
                        return self._cache[name]
                    generation = self._generation
                logger.debug("Loading configuration %r from %s", name, self.config_dir)
                settings = self.config(self.pathname(name), name)
                with self._lock:
                    if generation == self._generation:
                        self._cache[name] = settings
                return settings
        finally:
            with self._lock:
                entry[1] -= 1
                if not entry[1]:
                    del self._key_locks[name]

    read = __getitem__

    def exist(self, name: str) -> bool:
        """True unless ``name`` has no file or only an encrypted one without key."""
        try:
            self[name]
        except (ConfigurationFileMissing, EncryptionKeyMissing):
            return False
        return True

    def flush_cache(self) -> "Provider":
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._generation += 1
        logger.debug("Flushed %d cached configuration(s)", count)
        return self

    def cached(self, name: str) -> bool:
        with self._lock:
            return name in self._cache

    def proxy(self, env: Optional[str] = None) -> Proxy:
        return Proxy(self, env)

    # --- Writing ---

    def _provide_key_source(self, pathname: PathLike, encrypt: Union[bool, str]) -> KeySource:
        if encrypt == 'random':
            source = KeySource(var=new_key())
        elif encrypt is True:
            source = self.key_source(pathname)
        elif isinstance(encrypt, str):
            if not is_hex_key(encrypt):
                raise EncryptionKeyInvalid(
                    "key has to be 16 bytes long hex string"
                )
            source = KeySource(var=encrypt)
        else:
            raise ValueError(f"invalid encrypt argument {encrypt!r}")
        if source is None:
            raise EncryptionKeyMissing(
                f"encryption key for {str(pathname)!r} is missing"
            )
        return source

    @staticmethod
    def _prepare_output(value: Any) -> str:
        data = _lower(value)
        if not isinstance(data, dict):
            raise TypeError(f"configuration must be a mapping, got {type(value).__name__}")
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    def write_config(
        self,
        name: Union[str, Settings],
        value: Optional[Any] = None,
        encrypt: Union[bool, str] = False,
        store_key: bool = False,
    ) -> Union[str, bool]:
        """Write ``value`` as configuration ``name``.

        Args:
            name: Configuration name, or a Settings whose ``name_prefix``
                is the name and which is written itself.
            value: Mapping or Settings to write.
            encrypt: False for plaintext; True to use the resolved key;
                ``"random"`` for a new key; or a 32 hex character key.
            store_key: Also write the key to ``<name>.yml.key``.

        Returns:
            The hex key when encrypting, True otherwise.
        """
        try:
            if isinstance(name, Settings):
                if value is None:
                    value = name
                name = name.name_prefix
            if not name:
                raise ValueError("configuration name is required")
            if value is None:
                raise ValueError(f"no value to write for configuration {name!r}")
            config_pathname = self.pathname(name)
            output = self._prepare_output(value)
            if encrypt:
                source = self._provide_key_source(config_pathname, encrypt)
                envelope = EnvelopeCipher(source.key_bytes).encrypt(output)
                secure_write(f"{config_pathname}{ENCRYPTED_SUFFIX}", envelope)
                logger.info("Wrote encrypted configuration %s%s", config_pathname, ENCRYPTED_SUFFIX)
                if store_key:
                    secure_write(f"{config_pathname}{KEY_SUFFIX}", source.key)
                    logger.info("Stored key for %s", config_pathname)
                return source.key
            secure_write(config_pathname, output)
            logger.info("Wrote configuration %s", config_pathname)
            return True
        finally:
            self.flush_cache()


_default_provider: Optional[Provider] = None
_default_lock = threading.Lock()


def default_provider() -> Provider:
    """The process-wide provider used by shortcuts and :func:`configure`."""
    global _default_provider
    with _default_lock:
        if _default_provider is None:
            _default_provider = Provider()
        return _default_provider


def set_default_provider(provider: Optional[Provider]) -> None:
    global _default_provider
    with _default_lock:
        _default_provider = provider
