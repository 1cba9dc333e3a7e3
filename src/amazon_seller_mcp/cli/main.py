"""Command-line interface for amazon-seller-mcp."""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar

import click
import httpx

from amazon_seller_mcp.__version__ import __version__
from amazon_seller_mcp.auth import (
    DEFAULT_REGION,
    OAuthManager,
    Region,
    TokenStatus,
    create_token_store,
    parse_state,
)
from amazon_seller_mcp.config import Settings, configure_logging
from amazon_seller_mcp.exceptions import AmazonSellerMCPError

T = TypeVar("T")

REGION_CHOICE = click.Choice([region.value for region in Region])


def _with_manager(settings: Settings, action: Callable[[OAuthManager], Awaitable[T]]) -> T:
    """Run ``action`` against an OAuth manager backed by the configured store."""

    async def runner() -> T:
        storage = await create_token_store(settings.redis_url)
        manager = OAuthManager(storage=storage, settings=settings)
        try:
            return await action(manager)
        finally:
            await manager.close()
            await storage.close()

    return asyncio.run(runner())


def _warn_without_redis(settings: Settings) -> None:
    if not settings.redis_url:
        click.echo(
            "⚠️  REDIS_URL is not set; tokens are kept in memory and lost when this "
            "command exits.",
            err=True,
        )


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Amazon Seller MCP Server - Connect MCP clients to the Selling Partner API.

    This tool provides 10 tools across:
    - Account (authenticate, status)
    - Orders (list, details, shipment confirmation)
    - Inventory (FBA summaries, updates)
    - Reports (list, create)
    - Finances (financial event groups)
    """
    configure_logging(Settings.from_env())


@main.command("auth-url")
@click.option("--user-id", required=True, help="User identifier to authorize")
@click.option(
    "--region",
    type=REGION_CHOICE,
    default=DEFAULT_REGION.value,
    show_default=True,
    help="Amazon marketplace region",
)
def auth_url(user_id: str, region: str) -> None:
    """Print the Seller Central consent URL for a user.

    Requires AMAZON_CLIENT_ID and OAUTH_REDIRECT_URI.
    """
    manager = OAuthManager(settings=Settings.from_env())
    try:
        url = manager.build_consent_url(user_id, region)
    except AmazonSellerMCPError as e:
        click.echo(f"❌ Error: {e}")
        click.echo("")
        click.echo("Set environment variables:")
        click.echo("  export AMAZON_CLIENT_ID='your-client-id'")
        click.echo("  export OAUTH_REDIRECT_URI='https://your-app/callback'")
        sys.exit(1)

    click.echo("To authenticate Amazon Seller access, visit:")
    click.echo(url)


@main.command("exchange-code")
@click.option("--code", required=True, help="Authorization code from the redirect")
@click.option("--state", help="OAuth state from the redirect (user id and region)")
@click.option("--user-id", help="User identifier (when --state is not given)")
@click.option(
    "--region",
    type=REGION_CHOICE,
    default=DEFAULT_REGION.value,
    show_default=True,
    help="Amazon marketplace region (when --state is not given)",
)
def exchange_code(code: str, state: str | None, user_id: str | None, region: str) -> None:
    """Exchange an authorization code and store the user's tokens.

    Requires AMAZON_CLIENT_ID, AMAZON_CLIENT_SECRET and OAUTH_REDIRECT_URI.
    """
    if state:
        try:
            user_id, resolved_region = parse_state(state)
        except ValueError as e:
            click.echo(f"❌ Invalid state: {e}")
            sys.exit(1)
    elif user_id:
        resolved_region = Region(region)
    else:
        click.echo("❌ Error: either --state or --user-id is required")
        sys.exit(1)

    settings = Settings.from_env()
    _warn_without_redis(settings)

    try:
        bundle = _with_manager(
            settings,
            lambda manager: manager.complete_authorization(user_id, code, resolved_region),
        )
    except (AmazonSellerMCPError, httpx.HTTPError, ValueError) as e:
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)

    click.echo("✓ Authentication successful!")
    click.echo(f"User ID: {user_id}")
    click.echo(f"Region: {bundle.region.value}")


@main.command()
@click.option("--user-id", required=True, help="User identifier to check")
def status(user_id: str) -> None:
    """Show a user's stored token status without contacting Amazon."""
    settings = Settings.from_env()
    token_status, bundle = _with_manager(settings, lambda manager: manager.get_status(user_id))

    click.echo("Amazon Seller MCP Status:")
    click.echo(f"  User ID: {user_id}")
    click.echo(f"  Storage: {'Redis' if settings.redis_url else 'memory'}")

    if token_status == TokenStatus.MISSING:
        click.echo("  ❌ Not authenticated")
        click.echo("")
        click.echo("Run 'amazon-seller-mcp auth-url' to authenticate.")
        sys.exit(1)
    elif token_status == TokenStatus.INVALID:
        click.echo("  ❌ Stored tokens have no refresh token")
        click.echo("")
        click.echo("Run 'amazon-seller-mcp auth-url' to re-authenticate.")
        sys.exit(1)
    elif token_status == TokenStatus.EXPIRED:
        click.echo("  ⚠️  Access token expired (will refresh automatically on use)")
    else:
        click.echo("  ✓ Authenticated")

    if bundle is not None:
        click.echo(f"  Region: {bundle.region.value}")
        if bundle.expires_on is not None:
            expires = datetime.fromtimestamp(bundle.expires_on / 1000, tz=timezone.utc)
            click.echo(f"  Token expires: {expires.strftime('%Y-%m-%d %H:%M:%S UTC')}")


@main.command()
@click.option("--user-id", required=True, help="User identifier to revoke")
def revoke(user_id: str) -> None:
    """Delete a user's stored tokens, forcing re-authentication."""
    settings = Settings.from_env()
    removed = _with_manager(settings, lambda manager: manager.revoke(user_id))

    if removed:
        click.echo(f"✓ Revoked tokens for {user_id}")
    else:
        click.echo(f"No stored tokens for {user_id}")


@main.command()
def mcp() -> None:
    """Start the MCP server on stdio.

    Tokens persist in Redis when REDIS_URL is set, otherwise in memory.
    This command is typically invoked by an MCP client.
    """
    from amazon_seller_mcp.server import main as server_main

    try:
        click.echo("Starting Amazon Seller MCP server...", err=True)
        click.echo("Server provides 10 tools for the Selling Partner API", err=True)
        click.echo("", err=True)
        server_main()
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
