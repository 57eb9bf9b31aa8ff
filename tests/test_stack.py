import pytest
from aws_cdk import App
from aws_cdk.assertions import Match, Template

from webserver_infra import WebServerConfig, WebServerStack
from webserver_infra.bootstrap import BootstrapSettings, render_script

MY_IP = "203.0.113.7"


def synth(**overrides) -> Template:
    config = WebServerConfig(my_ip=MY_IP, **overrides).validate()
    stack = WebServerStack(App(), "webserver", config=config)
    return Template.from_stack(stack)


def only_id(template: Template, resource_type: str) -> str:
    resources = template.find_resources(resource_type)
    assert len(resources) == 1
    return next(iter(resources))


def name_tag(value):
    return Match.array_with([{"Key": "Name", "Value": value}])


@pytest.fixture(scope="module")
def template():
    return synth()


@pytest.mark.parametrize("resource_type", [
    "AWS::EC2::VPC",
    "AWS::EC2::Subnet",
    "AWS::EC2::InternetGateway",
    "AWS::EC2::VPCGatewayAttachment",
    "AWS::EC2::RouteTable",
    "AWS::EC2::SubnetRouteTableAssociation",
    "AWS::EC2::Route",
    "AWS::EC2::SecurityGroup",
    "AWS::EC2::KeyPair",
    "AWS::EC2::Instance",
])
def test_one_of_each_resource(template, resource_type):
    template.resource_count_is(resource_type, 1)


def test_no_nat_gateway(template):
    template.resource_count_is("AWS::EC2::NatGateway", 0)


def test_vpc(template):
    template.has_resource_properties("AWS::EC2::VPC", {
        "CidrBlock": "10.0.0.0/16",
        "Tags": name_tag("dev-vpc"),
    })


def test_subnet(template):
    template.has_resource_properties("AWS::EC2::Subnet", {
        "CidrBlock": "10.0.10.0/24",
        "AvailabilityZone": "eu-central-1a",
        "MapPublicIpOnLaunch": True,
        "Tags": name_tag("dev-subnet-1"),
    })


def test_gateway_and_route_table_tags(template):
    template.has_resource_properties("AWS::EC2::InternetGateway", {"Tags": name_tag("dev-igw")})
    template.has_resource_properties("AWS::EC2::RouteTable", {"Tags": name_tag("dev-rtb")})


def test_default_route_goes_through_attached_gateway(template):
    igw_id = only_id(template, "AWS::EC2::InternetGateway")
    attachment_id = only_id(template, "AWS::EC2::VPCGatewayAttachment")
    template.has_resource("AWS::EC2::Route", {
        "Properties": {
            "DestinationCidrBlock": "0.0.0.0/0",
            "GatewayId": {"Ref": igw_id},
        },
        "DependsOn": Match.array_with([attachment_id]),
    })


def test_security_group_ingress_is_ssh_from_operator_and_web_from_anywhere(template):
    sg = template.find_resources("AWS::EC2::SecurityGroup")
    props = next(iter(sg.values()))["Properties"]
    assert props["GroupName"] == "dev-sg"
    rules = {(r["CidrIp"], r["IpProtocol"], r["FromPort"], r["ToPort"])
             for r in props["SecurityGroupIngress"]}
    assert rules == {
        (f"{MY_IP}/32", "tcp", 22, 22),
        ("0.0.0.0/0", "tcp", 8080, 8080),
    }
    egress = props["SecurityGroupEgress"]
    assert [(r["CidrIp"], r["IpProtocol"]) for r in egress] == [("0.0.0.0/0", "-1")]


def test_generated_key_pair(template):
    template.has_resource_properties("AWS::EC2::KeyPair", {
        "KeyName": "dev-server-key",
        "KeyType": "rsa",
        "KeyFormat": "pem",
    })


def test_instance(template):
    key_id = only_id(template, "AWS::EC2::KeyPair")
    subnet_id = only_id(template, "AWS::EC2::Subnet")
    template.has_resource_properties("AWS::EC2::Instance", {
        "InstanceType": "t3.micro",
        "KeyName": {"Ref": key_id},
        "SubnetId": {"Ref": subnet_id},
        "Tags": name_tag("dev-server"),
    })


def test_instance_user_data_is_bootstrap_routine(template):
    expected = render_script(BootstrapSettings()).rstrip("\n")
    template.has_resource_properties("AWS::EC2::Instance", {
        "UserData": {"Fn::Base64": expected},
    })


def test_changed_bootstrap_replaces_instance():
    first = only_id(synth(), "AWS::EC2::Instance")
    same = only_id(synth(), "AWS::EC2::Instance")
    changed = only_id(synth(container_image="httpd"), "AWS::EC2::Instance")
    assert first == same
    assert first != changed


def test_outputs(template):
    outputs = template.find_outputs("*")
    assert {"Ec2PublicIp", "WebServerUrl", "AmiId", "KeyPairName",
            "PrivateKeyParameter", "VpcId", "SubnetId"} <= set(outputs)
    instance_id = only_id(template, "AWS::EC2::Instance")
    template.has_output("Ec2PublicIp", {
        "Value": {"Fn::GetAtt": [instance_id, "PublicIp"]},
    })


def test_env_prefix_and_custom_ports():
    template = synth(env_prefix="prod", host_port=9090, container_port=8000)
    template.has_resource_properties("AWS::EC2::VPC", {"Tags": name_tag("prod-vpc")})
    template.has_resource_properties("AWS::EC2::SecurityGroup", {
        "GroupName": "prod-sg",
        "SecurityGroupIngress": Match.array_with([
            Match.object_like({"CidrIp": "0.0.0.0/0", "FromPort": 9090, "ToPort": 9090}),
        ]),
    })
    template.has_resource_properties("AWS::EC2::Instance", {
        "UserData": {"Fn::Base64": Match.string_like_regexp("docker run -d -p 9090:8000 nginx")},
    })


def test_image_from_ssm_parameter():
    template = synth(image_ssm_parameter="/my/ami/id")
    params = template.to_json()["Parameters"]
    assert any(p.get("Default") == "/my/ami/id" for p in params.values())
