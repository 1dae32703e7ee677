"""Constants shared across complex_config."""

# environment variables consulted for a key, in priority order
KEY_ENV_VARS = ('COMPLEX_CONFIG_KEY', 'RAILS_MASTER_KEY')

CONFIG_DIR_ENV = 'COMPLEX_CONFIG_DIR'
CONFIG_ENV_ENV = 'COMPLEX_CONFIG_ENV'
DEEP_FREEZE_ENV = 'COMPLEX_CONFIG_DEEP_FREEZE'
LEGACY_ENV_ENV = 'RAILS_ENV'

DEFAULT_CONFIG_DIR = 'config'
DEFAULT_ENV = 'development'
MASTER_KEY_FILENAME = 'master.key'

CONFIG_SUFFIX = '.yml'
ENCRYPTED_SUFFIX = '.enc'
KEY_SUFFIX = '.key'

# reserved top-level section whose keys are inherited by its siblings
SHARED_SECTION = 'shared'

# file mode of everything complex_config writes
SECURE_FILE_MODE = 0o600
