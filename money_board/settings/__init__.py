"""Default settings files and loaders.

Default buckets, income sources and forecast knobs are stored in JSON files
next to this module so they can be changed without code changes.
"""

from .defaults import load_config, get_money_config, get_config_value

__all__ = ['load_config', 'get_money_config', 'get_config_value']
