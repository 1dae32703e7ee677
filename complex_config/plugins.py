"""
Plugins shipped with complex_config.

A plugin is called as ``plugin(settings, name)`` for an attribute that was
not set explicitly and returns ``Found(value)`` or ``SKIP``.
"""
import base64
import binascii
from urllib.parse import urlparse

from .settings import Settings, Found, SKIP, PluginResult


def uri_plugin(settings: Settings, name: str) -> PluginResult:
    """Derive ``foo_uri`` from ``foo_url`` as a parsed URL."""
    if not name.endswith('uri'):
        return SKIP
    url = settings.get_optional(name[:-3] + 'url')
    if not url:
        return SKIP
    return Found(urlparse(str(url)))


def base64_plugin(settings: Settings, name: str) -> PluginResult:
    """Derive ``foo`` from an explicitly set ``foo_base64``."""
    encoded_name = f"{name}_base64"
    if not settings.has(encoded_name):
        return SKIP
    try:
        return Found(base64.b64decode(settings[encoded_name], validate=True))
    except (binascii.Error, TypeError, ValueError):
        return SKIP


def enable(provider) -> None:
    """Register the shipped plugins on ``provider``."""
    provider.add_plugin(uri_plugin)
    provider.add_plugin(base64_plugin)


__all__ = ['uri_plugin', 'base64_plugin', 'enable']
