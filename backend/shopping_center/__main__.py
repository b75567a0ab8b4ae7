"""Shopping Center CLI entry point."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from shopping_center import __version__
from shopping_center.config import get_settings
from shopping_center.data import Product, create_product_service
from shopping_center.infrastructure import (
    ConfigurationError,
    InvalidIdError,
    check_connection,
    create_client,
    get_db_info,
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Shopping Center Configuration
# Credentials belong in .env (DB__CONNECTION_STRING), not here.

db:
  database_name: shopping_center
  server_selection_timeout_ms: 5000

paging:
  default_page_size: 20
  max_page_size: 100
"""


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from shopping_center.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _print_products(products: list[Product]) -> None:
    print(json.dumps([p.model_dump(mode="json") for p in products], indent=2))


def cmd_init(args: argparse.Namespace) -> int:
    """Create the data directory and a config.yaml template."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Set DB__CONNECTION_STRING in .env")
        print("2. Run 'python -m shopping_center ping' to verify the connection\n")
        return 0

    except OSError as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Shopping Center Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}")
        print(f"Log Level: {settings.log_level}\n")

        info = get_db_info(settings.db)
        print("Database:")
        print(f"  URL: {info['url'] or '✗ Not set'}")
        print(f"  Name: {info['database'] or '✗ Not set'}")
        print(f"  Server Selection Timeout: {settings.db.server_selection_timeout_ms} ms\n")

        print("Paging:")
        print(f"  Default Page Size: {settings.paging.default_page_size}")
        print(f"  Max Page Size: {settings.paging.max_page_size}\n")

        print(f"Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")
        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1


def cmd_ping(args: argparse.Namespace) -> int:
    """Check that MongoDB answers."""
    settings = get_settings()
    if not settings.db.connection_string:
        print("\n❌ DB__CONNECTION_STRING is not set\n")
        return 1

    client = create_client(settings.db)
    try:
        url = get_db_info(settings.db)["url"]
        if check_connection(client):
            print(f"\n✓ Connected to {url}\n")
            return 0
        print(f"\n❌ No response from {url}\n")
        return 1
    finally:
        client.close()


def cmd_products_list(args: argparse.Namespace) -> int:
    """List products, newest first."""
    settings = get_settings()
    page_size = min(args.page_size or settings.paging.default_page_size, settings.paging.max_page_size)

    async def run() -> list[Product]:
        service = create_product_service(settings.db)
        try:
            return await service.repository.get_all_with_paging(
                page_size=page_size, page_number=args.page
            )
        finally:
            service.repository.close()

    try:
        _print_products(asyncio.run(run()))
        return 0
    except (ConfigurationError, ValueError) as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Product listing failed: {e}", exc_info=True)
        print(f"\n❌ Product listing failed: {e}\n")
        return 1


def cmd_products_get(args: argparse.Namespace) -> int:
    """Print one product by id."""
    settings = get_settings()

    async def run() -> Product | None:
        service = create_product_service(settings.db)
        try:
            return await service.get_by_id(args.id)
        finally:
            service.repository.close()

    try:
        product = asyncio.run(run())
    except (ConfigurationError, InvalidIdError) as e:
        print(f"\n❌ {e.message}\n")
        return 1
    except Exception as e:
        logger.error(f"Product lookup failed: {e}", exc_info=True)
        print(f"\n❌ Product lookup failed: {e}\n")
        return 1

    if product is None:
        print(f"\n❌ Product not found: {args.id}\n")
        return 1
    _print_products([product])
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shopping_center",
        description="Shopping Center: MongoDB data layer tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Shopping Center {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_ping = subparsers.add_parser(
        "ping",
        help="Check the MongoDB connection",
    )
    parser_ping.set_defaults(func=cmd_ping)

    parser_products = subparsers.add_parser(
        "products",
        help="Query the product catalog",
    )
    products_sub = parser_products.add_subparsers(dest="products_command")

    parser_list = products_sub.add_parser("list", help="List products, newest first")
    parser_list.add_argument("--page", type=int, default=1, help="1-based page number")
    parser_list.add_argument("--page-size", type=int, default=None, help="Products per page")
    parser_list.set_defaults(func=cmd_products_list)

    parser_get = products_sub.add_parser("get", help="Show one product")
    parser_get.add_argument("id", help="24-character hex product id")
    parser_get.set_defaults(func=cmd_products_get)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    _configure_logging(get_settings().log_level)
    _init_logfire()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
