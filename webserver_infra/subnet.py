from aws_cdk import Tags
from aws_cdk import aws_ec2 as ec2
from constructs import Construct


class Subnet(Construct):
    """Public subnet with its own route table and an internet gateway."""

    def __init__(self, scope: Construct, construct_id: str, *, vpc: ec2.IVpc,
                 cidr_block: str, availability_zone: str, env_prefix: str):
        super().__init__(scope, construct_id)

        self.subnet = ec2.PublicSubnet(
            self, "Subnet1",
            vpc_id=vpc.vpc_id,
            cidr_block=cidr_block,
            availability_zone=availability_zone,
            map_public_ip_on_launch=True,
        )
        Tags.of(self.subnet).add("Name", f"{env_prefix}-subnet-1")

        self.internet_gateway = ec2.CfnInternetGateway(self, "InternetGateway")
        Tags.of(self.internet_gateway).add("Name", f"{env_prefix}-igw")

        attachment = ec2.CfnVPCGatewayAttachment(
            self, "GatewayAttachment",
            vpc_id=vpc.vpc_id,
            internet_gateway_id=self.internet_gateway.ref,
        )

        # the route may only be created once the gateway is attached
        self.subnet.add_default_internet_route(self.internet_gateway.ref, attachment)

        route_table = self.subnet.node.find_child("RouteTable")
        Tags.of(route_table).add("Name", f"{env_prefix}-rtb", priority=200)
