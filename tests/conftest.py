"""Shared fixtures: isolated environment and a temporary config directory."""
import textwrap

import pytest

from complex_config import Provider, set_default_provider
from complex_config.encryption import EnvelopeCipher

KEY = '5ea1e0f7a3ae4ef4b2e9c4a7d3f6b8c1'
OTHER_KEY = '0123456789abcdef0123456789abcdef'

CONFIG_YML = """\
development:
  config:
    baz: "something"
    pi: ${PI_VALUE:-3.141592653589793}
test:
  config:
    baz: "something else"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove every environment variable complex_config consults."""
    for name in (
        'COMPLEX_CONFIG_KEY',
        'RAILS_MASTER_KEY',
        'COMPLEX_CONFIG_ENV',
        'RAILS_ENV',
        'COMPLEX_CONFIG_DIR',
        'COMPLEX_CONFIG_DEEP_FREEZE',
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    set_default_provider(None)


@pytest.fixture
def config_dir(tmp_path):
    path = tmp_path / 'config'
    path.mkdir()
    return path


@pytest.fixture
def provider(config_dir):
    return Provider(config_dir=config_dir)


@pytest.fixture
def write_plain(config_dir):
    """Write ``<config_dir>/<name>.yml``."""
    def _write(name, text):
        path = config_dir / f'{name}.yml'
        path.write_text(textwrap.dedent(text), encoding='utf-8')
        return path
    return _write


@pytest.fixture
def write_encrypted(config_dir):
    """Write ``<config_dir>/<name>.yml.enc`` encrypted with ``key``."""
    def _write(name, text, key=KEY):
        path = config_dir / f'{name}.yml.enc'
        cipher = EnvelopeCipher(bytes.fromhex(key))
        path.write_text(cipher.encrypt(textwrap.dedent(text)), encoding='ascii')
        return path
    return _write
