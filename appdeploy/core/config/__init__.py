from appdeploy.core.config.loader import ConfigError, find_config_file, load_config  # noqa: F401
