"""Module level shortcuts bound to the default provider."""
from typing import Any, Optional

from .provider import Provider, default_provider


def complex_config(name: Optional[str] = None, provider: Optional[Provider] = None) -> Any:
    """Configuration ``name``, or a proxy without environment if no name."""
    provider = provider or default_provider()
    if name:
        return provider[name]
    return provider.proxy()


def complex_config_with_env(
    name: Optional[str] = None,
    env: Optional[str] = None,
    provider: Optional[Provider] = None,
) -> Any:
    """Section ``env`` of configuration ``name``, or a proxy bound to ``env``.

    ``env`` defaults to the provider environment.
    """
    provider = provider or default_provider()
    env = str(env or provider.env)
    if name:
        return provider.proxy(env).resolve(name)
    return provider.proxy(env)


cc = complex_config_with_env
