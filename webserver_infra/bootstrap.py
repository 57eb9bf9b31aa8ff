"""
Host bootstrap routine run by the web server instance on first boot.

The routine is a fixed, linear command sequence: refresh the package
index, install the container runtime, let the default user manage
containers, start the runtime and publish one web container. It has no
retries and no cleanup; the first failing command stops the script.
A container left running by an earlier run keeps the host port, so a
second run fails on `docker run` without touching it.
"""
from dataclasses import dataclass
from typing import List

from aws_cdk import aws_ec2 as ec2

SHEBANG = "#!/bin/bash"


@dataclass(frozen=True)
class BootstrapSettings:
    container_image: str = "nginx"
    host_port: int = 8080
    container_port: int = 80
    runtime_package: str = "docker"
    runtime_group: str = "docker"
    runtime_service: str = "docker"
    default_user: str = "ec2-user"


def bootstrap_commands(settings: BootstrapSettings) -> List[str]:
    return [
        "set -e",
        "sudo yum update -y",
        f"sudo yum install -y {settings.runtime_package}",
        f"sudo usermod -aG {settings.runtime_group} {settings.default_user}",
        f"sudo systemctl start {settings.runtime_service}",
        f"docker run -d -p {settings.host_port}:{settings.container_port} {settings.container_image}",
    ]


def render_script(settings: BootstrapSettings) -> str:
    """Render the routine as a standalone shell script (entry-script.sh)."""
    return "\n".join([SHEBANG] + bootstrap_commands(settings)) + "\n"


def create_user_data(settings: BootstrapSettings) -> ec2.UserData:
    user_data = ec2.UserData.for_linux(shebang=SHEBANG)
    user_data.add_commands(*bootstrap_commands(settings))
    return user_data
