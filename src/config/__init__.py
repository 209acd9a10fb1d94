from .structs import ClientSettings
from .property_source import (
    PropertySource,
    DictPropertySource,
    EnvironmentPropertySource,
    ChainedPropertySource
)
from .config_manager import ConfigManager

__all__ = [
    'ClientSettings',
    'PropertySource',
    'DictPropertySource',
    'EnvironmentPropertySource',
    'ChainedPropertySource',
    'ConfigManager',
]
