"""complex_config — structured application configuration from YAML files.

Plain ``<name>.yml`` and encrypted ``<name>.yml.enc`` files under a
configuration directory are merged into read-only Settings trees whose
missing attributes may be derived by registered plugins.
"""

from .version import __version__
from .exceptions import (
    ComplexConfigError,
    AttributeMissing,
    ConfigurationFileMissing,
    ConfigurationSyntaxError,
    SettingsFrozen,
    EncryptionError,
    EncryptionKeyInvalid,
    EncryptionKeyMissing,
    DecryptionFailed,
)
from .encryption import EnvelopeCipher, KeySource, KeyResolver
from .settings import Settings, Found, Skip, SKIP
from .tree import Tree
from .proxy import Proxy
from .provider import Provider, default_provider, set_default_provider
from .config import Config, configure
from .shortcuts import complex_config, complex_config_with_env, cc

__all__ = [
    "__version__",
    "ComplexConfigError",
    "AttributeMissing",
    "ConfigurationFileMissing",
    "ConfigurationSyntaxError",
    "SettingsFrozen",
    "EncryptionError",
    "EncryptionKeyInvalid",
    "EncryptionKeyMissing",
    "DecryptionFailed",
    "EnvelopeCipher",
    "KeySource",
    "KeyResolver",
    "Settings",
    "Found",
    "Skip",
    "SKIP",
    "Tree",
    "Proxy",
    "Provider",
    "default_provider",
    "set_default_provider",
    "Config",
    "configure",
    "complex_config",
    "complex_config_with_env",
    "cc",
]
