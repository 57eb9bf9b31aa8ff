"""
Operator helpers for a deployed web server stack.

    webserver-verify fetch-key --outputs cdk-outputs.json
    webserver-verify wait-http --outputs cdk-outputs.json --timeout 300
    webserver-verify script --output entry-script.sh
"""
import argparse
import json
import subprocess
import sys
import time
from pathlib import Path

import requests

from webserver_infra.bootstrap import BootstrapSettings, render_script

STACK_NAME = "webserver"
DEFAULT_KEY_FILE = Path("webserver-key.pem")


def read_outputs(path: Path, stack: str = STACK_NAME) -> dict:
    """Read one stack's section of a `cdk deploy --outputs-file` document."""
    with open(path, "r") as f:
        outputs = json.load(f)
    if stack not in outputs:
        raise KeyError(f"stack '{stack}' not found in {path}")
    return outputs[stack]


def fetch_private_key(parameter_name: str, key_file: Path) -> Path:
    result = subprocess.run(
        ["aws", "ssm", "get-parameter", "--name", parameter_name, "--with-decryption",
         "--query", "Parameter.Value", "--output", "text"],
        capture_output=True,
        text=True,
        check=True
    )
    # an earlier key file is read-only
    key_file.unlink(missing_ok=True)
    key_file.write_text(result.stdout.strip() + "\n")
    key_file.chmod(0o400)
    return key_file


def wait_for_http(url: str, timeout: float = 300, interval: float = 10) -> bool:
    """Poll `url` until it answers 200 or `timeout` seconds have passed."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            response = requests.get(url, timeout=5)
            if response.status_code == requests.codes["ok"]:
                return True
            print(f"  {url} answered {response.status_code}, waiting...")
        except requests.RequestException as e:
            print(f"  {url} not reachable yet ({e.__class__.__name__}), waiting...")
        if time.monotonic() + interval > deadline:
            return False
        time.sleep(interval)


def _fetch_key(args) -> int:
    parameter = args.parameter
    if parameter is None:
        parameter = read_outputs(args.outputs, args.stack)["PrivateKeyParameter"]
    print(f"Fetching private key from {parameter}...")
    try:
        key_file = fetch_private_key(parameter, args.key_file)
    except subprocess.CalledProcessError as e:
        print(f"Error: failed to read {parameter}: {e.stderr}", file=sys.stderr)
        return 1
    print(f"Private key written to: {key_file}")
    return 0


def _wait_http(args) -> int:
    ip = args.ip
    if ip is None:
        ip = read_outputs(args.outputs, args.stack)["Ec2PublicIp"]
    url = f"http://{ip}:{args.port}/"
    print(f"Waiting for {url} (up to {args.timeout}s)...")
    if wait_for_http(url, timeout=args.timeout, interval=args.interval):
        print(f"✓ {url} is serving")
        return 0
    print(f"✗ {url} did not answer 200 within {args.timeout}s", file=sys.stderr)
    return 1


def _script(args) -> int:
    text = render_script(BootstrapSettings(
        container_image=args.image,
        host_port=args.port,
        container_port=args.container_port,
    ))
    if args.output is None:
        sys.stdout.write(text)
    else:
        args.output.write_text(text)
        print(f"Bootstrap script written to: {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webserver-verify",
        description="Operator helpers for the web server stack")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_outputs(p):
        p.add_argument("--outputs", type=Path, default=Path("cdk-outputs.json"),
                       help="File written by `cdk deploy --outputs-file`")
        p.add_argument("--stack", default=STACK_NAME)

    p = sub.add_parser("fetch-key", help="Download the generated private key")
    add_outputs(p)
    p.add_argument("--parameter", default=None,
                   help="SSM parameter name (default: from outputs file)")
    p.add_argument("--key-file", type=Path, default=DEFAULT_KEY_FILE)
    p.set_defaults(func=_fetch_key)

    p = sub.add_parser("wait-http", help="Wait for the web container to answer")
    add_outputs(p)
    p.add_argument("--ip", default=None, help="Public IP (default: from outputs file)")
    p.add_argument("--port", type=int, default=8080)
    p.add_argument("--timeout", type=float, default=300)
    p.add_argument("--interval", type=float, default=10)
    p.set_defaults(func=_wait_http)

    p = sub.add_parser("script", help="Render the bootstrap script")
    p.add_argument("--image", default="nginx")
    p.add_argument("--port", type=int, default=8080)
    p.add_argument("--container-port", type=int, default=80)
    p.add_argument("--output", type=Path, default=None)
    p.set_defaults(func=_script)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        sys.exit(args.func(args))
    except (OSError, KeyError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
