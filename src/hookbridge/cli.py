#!/usr/bin/env python3
"""
HookBridge CLI

Run the HTTP facade or submit a payload to a running bridge.
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import click
import httpx
import yaml

from hookbridge import __version__
from hookbridge.config import BridgeConfig, setup_logging
from hookbridge.server.app import BridgeServer

logger = logging.getLogger(__name__)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.version_option(version=__version__, prog_name='HookBridge')
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool):
    """
    HookBridge - request/response facade over webhook workflow engines
    """
    ctx.ensure_object(dict)
    if debug:
        ctx.obj['log_level'] = 'DEBUG'
    elif verbose:
        ctx.obj['log_level'] = 'INFO'
    else:
        ctx.obj['log_level'] = None


def _load_config(config_file: Optional[str]) -> BridgeConfig:
    try:
        return BridgeConfig.load(config_file)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Could not load config: {e}")


@cli.command()
@click.option('--config', 'config_file', type=click.Path(exists=True), help='YAML config file')
@click.option('--host', help='Bind address')
@click.option('--port', type=int, help='Bind port')
@click.option('--engine-url', help='Workflow engine webhook URL')
@click.option('--timeout', type=float, help='Seconds to wait for a callback')
@click.pass_context
def serve(ctx: click.Context, config_file: Optional[str], host: Optional[str], port: Optional[int],
          engine_url: Optional[str], timeout: Optional[float]):
    """Run the HookBridge HTTP server"""
    config = _load_config(config_file)
    if host:
        config.host = host
    if port:
        config.port = port
    if engine_url:
        config.engine_url = engine_url
    if timeout:
        config.request_timeout = timeout
    if ctx.obj.get('log_level'):
        config.log_level = ctx.obj['log_level']

    try:
        config.validate()
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    setup_logging(config)
    click.echo(f"🚀 HookBridge on http://{config.host}:{config.port} -> {config.engine_url}")

    server = BridgeServer(config)
    try:
        asyncio.run(server.serve())
    except KeyboardInterrupt:
        click.echo("\n🛑 HookBridge stopped")


@cli.command()
@click.argument('payload')
@click.option('--url', default='http://localhost:3000/api/submit', show_default=True,
              help='Submission URL of a running bridge')
@click.option('--timeout', type=float, default=75.0, show_default=True,
              help='Seconds to wait for the response')
def submit(payload: str, url: str, timeout: float):
    """Submit a JSON PAYLOAD and print the workflow result"""
    try:
        body = json.loads(payload)
    except ValueError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint='PAYLOAD')

    try:
        response = httpx.post(url, json=body, timeout=timeout)
    except httpx.HTTPError as e:
        raise click.ClickException(f"Request failed: {e}")

    try:
        data = response.json()
    except ValueError:
        data = {"error": response.text}

    if response.is_success:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"❌ {data.get('error', 'Request failed')} ({response.status_code})", err=True)
    if data.get('details'):
        click.echo(f"   {data['details']}", err=True)
    sys.exit(1)


@cli.command('show-config')
@click.option('--config', 'config_file', type=click.Path(exists=True), help='YAML config file')
def show_config(config_file: Optional[str]):
    """Print the effective configuration"""
    config = _load_config(config_file)
    click.echo(yaml.safe_dump(config.to_dict(), sort_keys=False))


def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\n⚠️  Interrupted by user")
        sys.exit(130)


if __name__ == '__main__':
    main()
