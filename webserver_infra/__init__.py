from webserver_infra.config import ConfigError, WebServerConfig, load_config
from webserver_infra.stack import WebServerStack

__all__ = ["ConfigError", "WebServerConfig", "WebServerStack", "load_config"]
