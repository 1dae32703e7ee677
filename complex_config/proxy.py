"""
Proxy — lazy, memoizing access to configurations by name.

``proxy.database`` (or ``proxy['database']``, ``proxy.resolve('database')``)
loads configuration ``database`` on first use and, when the proxy has an
environment, returns that environment's section. A trailing ``?`` on an
item name (``proxy['database?']``) or :meth:`Proxy.resolve_optional`
returns None for a missing configuration instead of raising.
"""
import threading
from typing import Any, Optional

from .settings import Settings


class Proxy:
    """Front-end resolving names through a provider.

    Handles are memoized per provider cache generation, so anything that
    flushes the provider cache also invalidates this proxy.
    """

    def __init__(self, provider: Any, env: Optional[str] = None):
        self._provider = provider
        self._env = env
        self._handles: dict[str, tuple[int, Settings]] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f'<Proxy [env:{self._env}]>'

    @property
    def env(self) -> Optional[str]:
        return self._env

    @property
    def provider(self) -> Any:
        return self._provider

    def handle(self, name: str) -> Settings:
        """The whole configuration ``name``, regardless of environment."""
        generation = self._provider.generation
        with self._lock:
            cached = self._handles.get(name)
        if cached is not None and cached[0] == generation:
            return cached[1]
        config = self._provider[name]
        with self._lock:
            self._handles[name] = (generation, config)
        return config

    def resolve(self, name: str, env: Optional[str] = None) -> Any:
        """Configuration ``name``, indexed by ``env`` or the proxy environment.

        A missing environment section yields an empty Settings.
        """
        config = self.handle(name)
        env = env or self._env
        if not env:
            return config
        section = config[env] if config.has(env) else None
        if section is None:
            return Settings(name_prefix=config.name_prefix, provider=self._provider)
        return section

    def resolve_optional(self, name: str, env: Optional[str] = None) -> Any:
        """Like :meth:`resolve`, but None if the configuration does not exist."""
        if not self._provider.exist(name):
            return None
        return self.resolve(name, env)

    def reload(self) -> "Proxy":
        self._provider.flush_cache()
        with self._lock:
            self._handles.clear()
        return self

    def __getitem__(self, name: str) -> Any:
        if name.endswith('?'):
            return self.resolve_optional(name[:-1])
        return self.resolve(name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith('_'):
            raise AttributeError(name)
        return self.resolve(name)
