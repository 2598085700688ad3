from .config_manager import ConfigManager, ConfigError, parse_duration

__all__ = ['ConfigManager', 'ConfigError', 'parse_duration']
