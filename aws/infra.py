# Dependencies come from the project's pyproject.toml (aws-cdk-lib, constructs, pyyaml).
#
# To use this infrastructure:
# 0. Install the project, from the repository root: pip install -e .
# 1. Set your address: edit webserver.yaml or pass -c my_ip=<YOUR_IP>
# 2. Deploy (from this directory): cdk deploy --outputs-file cdk-outputs.json
# 3. Download private key: webserver-verify fetch-key --outputs cdk-outputs.json
# 4. Wait for the container: webserver-verify wait-http --outputs cdk-outputs.json
# 5. SSH to instance: ssh -i webserver-key.pem ec2-user@<PUBLIC_IP>

import os
from pathlib import Path

from aws_cdk import App, Environment

from webserver_infra import WebServerStack, load_config

THIS_DIR = Path(__file__).parent

app = App()
WebServerStack(
    app, "webserver",
    config=load_config(app.node, config_file=THIS_DIR / "webserver.yaml"),
    env=Environment(
        account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
        region=os.environ.get("CDK_DEFAULT_REGION")
    ),
)
app.synth()
