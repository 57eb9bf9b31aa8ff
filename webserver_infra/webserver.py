from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from webserver_infra.bootstrap import BootstrapSettings, create_user_data
from webserver_infra.config import WebServerConfig

SSH_PORT = 22


class WebServer(Construct):
    """Security group, generated key pair and the instance serving the container."""

    def __init__(self, scope: Construct, construct_id: str, *, vpc: ec2.IVpc,
                 subnet: ec2.ISubnet, config: WebServerConfig):
        super().__init__(scope, construct_id)
        prefix = config.env_prefix

        self.security_group = create_security_group(self, vpc, config)

        # AWS generates the key; the private half lands in SSM under /ec2/keypair/<id>
        self.key_pair = ec2.KeyPair(
            self, "ServerKeyPair",
            key_pair_name=f"{prefix}-server-key",
            type=ec2.KeyPairType.RSA,
            format=ec2.KeyPairFormat.PEM,
        )

        self.machine_image = select_machine_image(config)

        self.instance = ec2.Instance(
            self, "Server",
            instance_name=f"{prefix}-server",
            instance_type=ec2.InstanceType(config.instance_type),
            machine_image=self.machine_image,
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnets=[subnet]),
            security_group=self.security_group,
            key_pair=self.key_pair,
            user_data=create_user_data(BootstrapSettings(
                container_image=config.container_image,
                host_port=config.host_port,
                container_port=config.container_port,
            )),
            # a new bootstrap routine means a new instance that runs it
            user_data_causes_replacement=True,
        )


def select_machine_image(config: WebServerConfig) -> ec2.IMachineImage:
    if config.image_ssm_parameter:
        return ec2.MachineImage.from_ssm_parameter(config.image_ssm_parameter)
    return ec2.MachineImage.latest_amazon_linux2023()


def create_security_group(scope: Construct, vpc: ec2.IVpc,
                          config: WebServerConfig) -> ec2.SecurityGroup:
    sg = ec2.SecurityGroup(
        scope, "ServerSecurityGroup",
        vpc=vpc,
        security_group_name=f"{config.env_prefix}-sg",
        description=f"SSH from the operator, HTTP on {config.host_port} from anywhere",
        allow_all_outbound=True,
    )
    sg.add_ingress_rule(ec2.Peer.ipv4(config.ssh_cidr), ec2.Port.tcp(SSH_PORT),
                        "SSH from operator address")
    sg.add_ingress_rule(ec2.Peer.any_ipv4(), ec2.Port.tcp(config.host_port),
                        "Web container")
    return sg
