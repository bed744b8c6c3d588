"""SQLGrid configuration package"""

from .settings import SQLGridConfig, ConfigManager, get_config, configure_logging

__all__ = ['SQLGridConfig', 'ConfigManager', 'get_config', 'configure_logging']
