from aws_cdk import CfnOutput, Stack
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from webserver_infra.config import WebServerConfig
from webserver_infra.subnet import Subnet
from webserver_infra.webserver import WebServer


class WebServerStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, config: WebServerConfig, **kwargs):
        super().__init__(scope, construct_id, **kwargs)
        prefix = config.env_prefix

        # subnets, gateway and routes are declared by the Subnet construct
        vpc = ec2.Vpc(
            self, "Vpc",
            ip_addresses=ec2.IpAddresses.cidr(config.vpc_cidr_block),
            subnet_configuration=[],
            nat_gateways=0,
            vpc_name=f"{prefix}-vpc",
        )

        network = Subnet(
            self, "Network",
            vpc=vpc,
            cidr_block=config.subnet_cidr_block,
            availability_zone=config.avail_zone,
            env_prefix=prefix,
        )
        server = WebServer(self, "WebServer", vpc=vpc, subnet=network.subnet, config=config)

        CfnOutput(
            self, "Ec2PublicIp",
            value=server.instance.instance_public_ip,
            description="Public IP of the web server instance"
        )
        CfnOutput(
            self, "WebServerUrl",
            value=f"http://{server.instance.instance_public_ip}:{config.host_port}",
        )
        CfnOutput(
            self, "AmiId",
            value=server.machine_image.get_image(self).image_id,
            description="Image the web server was launched from"
        )
        CfnOutput(
            self, "KeyPairName",
            value=server.key_pair.key_pair_name
        )
        CfnOutput(
            self, "PrivateKeyParameter",
            value=server.key_pair.private_key.parameter_name,
            description="SSM parameter holding the generated private key"
        )
        CfnOutput(self, "VpcId", value=vpc.vpc_id)
        CfnOutput(self, "SubnetId", value=network.subnet.subnet_id)
