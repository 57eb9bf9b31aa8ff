"""
Configuration inputs for the web server stack.

Values come from built-in defaults, then the YAML file, then CDK context
(`cdk.json` or `cdk deploy -c key=value`), later sources winning.
"""
import ipaddress
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from constructs import Node


class ConfigError(ValueError):
    """Invalid or missing configuration value."""


@dataclass(frozen=True)
class WebServerConfig:
    my_ip: str
    env_prefix: str = "dev"
    vpc_cidr_block: str = "10.0.0.0/16"
    subnet_cidr_block: str = "10.0.10.0/24"
    avail_zone: str = "eu-central-1a"
    instance_type: str = "t3.micro"
    image_ssm_parameter: str = ""
    container_image: str = "nginx"
    host_port: int = 8080
    container_port: int = 80

    @property
    def ssh_cidr(self) -> str:
        return normalize_ip(self.my_ip)

    def validate(self) -> "WebServerConfig":
        if not self.env_prefix:
            raise ConfigError("env_prefix must not be empty")
        vpc = _network("vpc_cidr_block", self.vpc_cidr_block)
        subnet = _network("subnet_cidr_block", self.subnet_cidr_block)
        if not subnet.subnet_of(vpc):
            raise ConfigError(
                f"subnet_cidr_block {subnet} is not inside vpc_cidr_block {vpc}")
        normalize_ip(self.my_ip)
        for key in ("host_port", "container_port"):
            port = getattr(self, key)
            if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
                raise ConfigError(f"{key} must be a port number, got {port!r}")
        if not self.container_image:
            raise ConfigError("container_image must not be empty")
        return self


def _network(key: str, value: str) -> ipaddress.IPv4Network:
    try:
        return ipaddress.IPv4Network(value)
    except ValueError as e:
        raise ConfigError(f"{key}: {e}") from e


def normalize_ip(value: str) -> str:
    """Turn an operator address ("1.2.3.4" or "1.2.3.4/32") into a /32 CIDR."""
    if not value:
        raise ConfigError("my_ip is required (the address allowed to SSH in)")
    try:
        net = ipaddress.IPv4Network(value if "/" in value else f"{value}/32")
    except ValueError as e:
        raise ConfigError(f"my_ip: {e}") from e
    if net.prefixlen != 32:
        raise ConfigError(f"my_ip must be a single address, got {value}")
    return str(net)


def load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"config_file: {path} not found")
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return data


def _coerce(key: str, value: Any) -> Any:
    # context passed with -c arrives as strings
    if key in ("host_port", "container_port") and isinstance(value, str):
        try:
            return int(value)
        except ValueError as e:
            raise ConfigError(f"{key} must be a port number, got {value!r}") from e
    return value


def build_config(values: Dict[str, Any]) -> WebServerConfig:
    known = {f.name for f in fields(WebServerConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
    if not values.get("my_ip"):
        raise ConfigError("my_ip is required (the address allowed to SSH in)")
    values = {k: _coerce(k, v) for k, v in values.items()}
    return WebServerConfig(**values).validate()


def load_config(node: Node, config_file: Optional[Path] = None) -> WebServerConfig:
    """Resolve the stack configuration for a construct tree node.

    A `config_file` context value takes the place of the `config_file`
    argument. Without either, only defaults and context are used.
    """
    ctx_file = node.try_get_context("config_file")
    if ctx_file:
        config_file = Path(ctx_file)

    values = load_yaml(config_file) if config_file is not None else {}
    for f in fields(WebServerConfig):
        ctx_value = node.try_get_context(f.name)
        if ctx_value is not None:
            values[f.name] = ctx_value
    return build_config(values)
