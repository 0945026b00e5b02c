#!/usr/bin/env python3
"""Request M2M tokens through a deployed token cache stack.

Reads the stack outputs, looks up the machine client secret in Cognito and
requests tokens through the cache proxy. Repeated requests with the same
credentials should return the same cached token.

Usage:
    python -m m2m_token_cache.cli                       # Default stack, 2 requests
    python -m m2m_token_cache.cli --stack my-stack --region eu-west-1
    python -m m2m_token_cache.cli --count 5 --json
"""
import argparse
import json
import logging
import sys

import boto3
from botocore.exceptions import ClientError

from m2m_token_cache.client import (
    StackOutputsError,
    TokenCacheClient,
    TokenCacheError,
)
from m2m_token_cache.settings import TokenCacheSettings

logger = logging.getLogger(__name__)

REQUIRED_OUTPUTS = ("UserPoolId", "MachineClientId", "CacheProxyTokenUrl")


def get_stack_outputs(stack_name: str, cloudformation=None) -> dict:
    """Get outputs from a CloudFormation stack.

    Raises:
        StackOutputsError: If the stack cannot be described or lacks outputs
    """
    cloudformation = cloudformation or boto3.client("cloudformation")
    try:
        response = cloudformation.describe_stacks(StackName=stack_name)
    except ClientError as e:
        raise StackOutputsError(f"Cannot describe stack {stack_name}: {e}") from e

    outputs = {}
    for output in response["Stacks"][0].get("Outputs", []):
        outputs[output["OutputKey"]] = output["OutputValue"]

    missing = [key for key in REQUIRED_OUTPUTS if key not in outputs]
    if missing:
        raise StackOutputsError(
            f"Stack {stack_name} is missing outputs: {', '.join(missing)}"
        )
    return outputs


def get_client_secret(user_pool_id: str, client_id: str, cognito=None) -> str:
    """Look up the app client secret in Cognito.

    Raises:
        StackOutputsError: If the client cannot be described or has no secret
    """
    cognito = cognito or boto3.client("cognito-idp")
    try:
        response = cognito.describe_user_pool_client(
            UserPoolId=user_pool_id, ClientId=client_id
        )
    except ClientError as e:
        raise StackOutputsError(f"Cannot describe app client {client_id}: {e}") from e

    client_secret = response["UserPoolClient"].get("ClientSecret")
    if not client_secret:
        raise StackOutputsError(f"App client {client_id} has no client secret")
    return client_secret


def client_from_stack(stack_name: str, region: str) -> TokenCacheClient:
    """Build a TokenCacheClient from the outputs of a deployed stack."""
    session = boto3.session.Session(region_name=region)
    outputs = get_stack_outputs(stack_name, session.client("cloudformation"))
    client_secret = get_client_secret(
        outputs["UserPoolId"],
        outputs["MachineClientId"],
        session.client("cognito-idp"),
    )
    return TokenCacheClient(
        token_url=outputs["CacheProxyTokenUrl"],
        client_id=outputs["MachineClientId"],
        client_secret=client_secret,
        scope=outputs.get("OAuthScope"),
    )


def main(argv=None) -> int:
    """Run the CLI."""
    try:
        defaults = TokenCacheSettings.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser = argparse.ArgumentParser(
        description="Request M2M tokens through the Cognito token cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--stack", "-s", default=defaults.stack_name, help="CloudFormation stack name"
    )
    parser.add_argument("--region", "-r", default=defaults.region, help="AWS region")
    parser.add_argument(
        "--count",
        "-n",
        type=int,
        default=2,
        help="Number of token requests, at least 2 (default: 2)",
    )
    parser.add_argument(
        "--json", "-j", action="store_true", help="Output result as JSON"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose/debug output"
    )

    args = parser.parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    # A single request cannot show whether the cache answered
    if args.count < 2:
        print("Error: --count must be at least 2", file=sys.stderr)
        return 1

    try:
        client = client_from_stack(args.stack, args.region)
        tokens = [client.get_token() for _ in range(args.count)]
    except TokenCacheError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    cached = len({token.access_token for token in tokens}) == 1
    if args.json:
        output = {
            "token_url": client.token_url,
            "requests": len(tokens),
            "cached": cached,
            "expires_in": tokens[-1].expires_in,
        }
        print(json.dumps(output, indent=2))
    else:
        print(f"Token URL: {client.token_url}")
        print(f"Requests:  {len(tokens)}")
        print(f"Cached:    {'yes' if cached else 'no'}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
