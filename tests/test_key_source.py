"""
Tests for KeySource and KeyResolver.

Tests cover:
- Single-discriminant validation
- Reading keys from values, environment variables and files
- Resolution priority across sources
- Key helpers (new_key, valid_key, key_to_bytes)
"""
import itertools

import pytest

from complex_config.encryption import (
    EnvelopeCipher,
    KeyResolver,
    KeySource,
    is_hex_key,
    key_to_bytes,
    new_key,
    valid_key,
)
from complex_config.exceptions import EncryptionKeyInvalid

from .conftest import KEY, OTHER_KEY

THIRD_KEY = 'fedcba9876543210fedcba9876543210'
FOURTH_KEY = '00112233445566778899aabbccddeeff'


class TestKeySourceValidation:
    """Tests for KeySource construction."""

    @pytest.mark.parametrize('fields', list(itertools.combinations(
        ['pathname', 'env_var', 'var', 'master_key_pathname'], 2
    )))
    def test_two_settings_fail(self, fields):
        """Test any two discriminants fail fast."""
        with pytest.raises(ValueError):
            KeySource(**{field: 'x' for field in fields})

    def test_all_settings_fail(self):
        """Test all discriminants at once fail fast."""
        with pytest.raises(ValueError):
            KeySource(pathname='a', env_var='b', var='c', master_key_pathname='d')

    def test_no_setting_has_no_key(self):
        """Test an empty source yields no key."""
        source = KeySource()
        assert source.key is None
        assert source.key_bytes is None

    def test_path_objects_are_accepted(self, tmp_path):
        """Test pathlib paths are accepted for file sources."""
        source = KeySource(master_key_pathname=tmp_path / 'master.key')
        assert source.master_key_pathname == str(tmp_path / 'master.key')
        assert source.master_key is True


class TestKeySourceReading:
    """Tests for reading key material."""

    def test_var(self):
        """Test inline value is trimmed."""
        assert KeySource(var=f'{KEY}\n').key == KEY

    def test_env_var(self, monkeypatch):
        """Test environment variable is read."""
        monkeypatch.setenv('MY_KEY', KEY)
        assert KeySource(env_var='MY_KEY').key == KEY

    def test_unset_env_var(self):
        """Test unset environment variable yields no key."""
        assert KeySource(env_var='COMPLEX_CONFIG_KEY').key is None

    def test_key_file_sibling(self, tmp_path):
        """Test the .key sibling file is read and trimmed."""
        (tmp_path / 'config.yml.key').write_text(f'{KEY}\n')
        source = KeySource(pathname=str(tmp_path / 'config.yml'))
        assert source.key == KEY

    def test_missing_key_file(self, tmp_path):
        """Test a missing key file yields no key."""
        assert KeySource(pathname=str(tmp_path / 'nope.yml')).key is None

    def test_key_file_below_regular_file(self, tmp_path):
        """Test a path through a regular file yields no key."""
        (tmp_path / 'file').write_text('')
        assert KeySource(pathname=str(tmp_path / 'file' / 'config.yml')).key is None

    def test_master_key_file(self, tmp_path):
        """Test the master key file is read."""
        (tmp_path / 'master.key').write_text(f'{KEY}\n')
        source = KeySource(master_key_pathname=str(tmp_path / 'master.key'))
        assert source.key == KEY

    def test_empty_value_is_absent(self, monkeypatch):
        """Test blank key material counts as no key."""
        monkeypatch.setenv('MY_KEY', '  \n')
        assert KeySource(env_var='MY_KEY').key is None

    def test_key_bytes(self):
        """Test hex key is decoded to 16 bytes."""
        assert KeySource(var=KEY).key_bytes == bytes.fromhex(KEY)

    def test_key_bytes_invalid_hex(self):
        """Test non-hex key material is rejected when decoded."""
        with pytest.raises(EncryptionKeyInvalid):
            KeySource(var='not a hex key').key_bytes


class TestKeyResolver:
    """Tests for source priority."""

    @pytest.fixture
    def pathname(self, tmp_path):
        return tmp_path / 'config.yml'

    @pytest.fixture
    def master(self, tmp_path):
        return tmp_path / 'master.key'

    def test_nothing_resolves(self, pathname, master):
        """Test no source yields None."""
        assert KeyResolver(master_key_path=master).resolve(pathname) is None

    def test_inline_beats_env(self, monkeypatch, pathname, master):
        """Test the inline key wins over environment variables."""
        monkeypatch.setenv('COMPLEX_CONFIG_KEY', OTHER_KEY)
        source = KeyResolver(key=KEY, master_key_path=master).resolve(pathname)
        assert source.key == KEY
        assert source.kind == 'var'

    def test_key_file_beats_env(self, monkeypatch, pathname, master):
        """Test the sibling key file wins over environment variables."""
        (pathname.parent / 'config.yml.key').write_text(KEY)
        monkeypatch.setenv('COMPLEX_CONFIG_KEY', OTHER_KEY)
        source = KeyResolver(master_key_path=master).resolve(pathname)
        assert source.key == KEY
        assert source.kind == 'key_file'

    def test_complex_config_key_beats_rails_master_key(self, monkeypatch, pathname, master):
        """Test COMPLEX_CONFIG_KEY wins over RAILS_MASTER_KEY."""
        monkeypatch.setenv('COMPLEX_CONFIG_KEY', KEY)
        monkeypatch.setenv('RAILS_MASTER_KEY', OTHER_KEY)
        assert KeyResolver(master_key_path=master).resolve(pathname).key == KEY

    def test_rails_master_key(self, monkeypatch, pathname, master):
        """Test the legacy variable is used when it is the only one."""
        monkeypatch.setenv('RAILS_MASTER_KEY', OTHER_KEY)
        master.write_text(THIRD_KEY)
        assert KeyResolver(master_key_path=master).resolve(pathname).key == OTHER_KEY

    def test_master_key_is_last(self, pathname, master):
        """Test the master key file is the fallback."""
        master.write_text(f'{THIRD_KEY}\n')
        source = KeyResolver(master_key_path=master).resolve(pathname)
        assert source.key == THIRD_KEY
        assert source.master_key is True

    def test_full_priority_order(self, pathname, master):
        """Test the order of sources."""
        sources = KeyResolver(key=FOURTH_KEY, master_key_path=master).sources(pathname)
        assert [source.kind for source in sources] == [
            'var',
            'key_file',
            'env:COMPLEX_CONFIG_KEY',
            'env:RAILS_MASTER_KEY',
            'master_key',
        ]


class TestKeyHelpers:
    """Tests for key helper functions."""

    def test_new_key(self):
        """Test random keys are 32 hex characters and differ."""
        key = new_key()
        assert is_hex_key(key)
        assert key != new_key()

    def test_valid_key(self):
        """Test a good key yields a cipher."""
        assert isinstance(valid_key(KEY), EnvelopeCipher)

    @pytest.mark.parametrize('key', ['abc', '0123456789abcdef', 'zz' * 16])
    def test_invalid_key(self, key):
        """Test unusable keys yield False."""
        assert valid_key(key) is False

    def test_key_to_bytes(self):
        """Test hex decoding."""
        assert key_to_bytes('00ff') == b'\x00\xff'

    @pytest.mark.parametrize('key', [KEY, KEY.upper()])
    def test_is_hex_key(self, key):
        """Test 32 hex characters of either case are accepted."""
        assert is_hex_key(key)

    @pytest.mark.parametrize('key', ['', KEY[:-1], KEY + '0', 'g' * 32, None])
    def test_is_not_hex_key(self, key):
        """Test anything else is rejected."""
        assert not is_hex_key(key)
