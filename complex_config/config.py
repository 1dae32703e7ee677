"""
Configuration of complex_config itself.

Values may be given explicitly or read from the environment:
    COMPLEX_CONFIG_DIR = <directory of the configuration files>
    COMPLEX_CONFIG_ENV = <default environment section>
    COMPLEX_CONFIG_DEEP_FREEZE = <true|false>

Security Note:
    Never log key material.
"""
import os
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .conf import CONFIG_DIR_ENV, CONFIG_ENV_ENV, DEEP_FREEZE_ENV
from .encryption import is_hex_key
from .provider import Provider, default_provider

logger = logging.getLogger("complex_config")


class Config(BaseModel):
    """Validated provider configuration.

    Fields left as None keep the provider's current value.
    """

    config_dir: Optional[Path] = None
    env: Optional[str] = None
    deep_freeze: Optional[bool] = None
    key: Optional[str] = None
    master_key_path: Optional[Path] = None
    plugins: list[Any] = Field(default_factory=list)

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: Optional[str]) -> Optional[str]:
        """Validate the key is 32 hex characters."""
        if v is not None and not is_hex_key(v):
            raise ValueError("key has to be 16 bytes long hex string")
        return v

    @field_validator("plugins")
    @classmethod
    def validate_plugins(cls, v: list[Any]) -> list[Any]:
        for plugin in v:
            if not callable(plugin):
                raise ValueError(f"plugin {plugin!r} is not callable")
        return v

    def add_plugin(self, plugin: Any) -> "Config":
        if not callable(plugin):
            raise ValueError(f"plugin {plugin!r} is not callable")
        self.plugins.append(plugin)
        return self

    def configure(self, provider: Provider) -> "Config":
        """Apply every set field to ``provider`` and register the plugins."""
        for name in ('config_dir', 'env', 'deep_freeze', 'key', 'master_key_path'):
            value = getattr(self, name)
            if value is not None:
                setattr(provider, name, value)
        for plugin in self.plugins:
            provider.add_plugin(plugin)
        logger.debug("Configured %r with %d plugin(s)", provider, len(self.plugins))
        return self

    @classmethod
    def from_env(cls) -> "Config":
        """Create Config by loading values from environment.

        Returns:
            Populated Config instance.
        """
        deep_freeze = os.environ.get(DEEP_FREEZE_ENV)
        return cls(
            config_dir=os.environ.get(CONFIG_DIR_ENV),
            env=os.environ.get(CONFIG_ENV_ENV),
            deep_freeze=deep_freeze,
        )


def configure(provider: Optional[Provider] = None, **kwargs) -> Config:
    """Build a :class:`Config` from ``kwargs`` and apply it.

    Args:
        provider: Provider to configure, the default provider if None.
        **kwargs: :class:`Config` fields.

    Returns:
        The applied Config.
    """
    config = Config(**kwargs)
    return config.configure(provider or default_provider())
