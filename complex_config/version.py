"""complex_config Meta information.
   complex_config resolves structured application settings from plain and
   encrypted YAML files.
"""
__title__ = 'complex_config'
__description__ = (
   'Structured, optionally encrypted YAML application configuration '
   'with plugin-derived attributes.'
)
__version__ = '0.22.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
