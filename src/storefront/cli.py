"""Command-line interface for storefront."""

import argparse
import json
import sys

from . import __version__
from .catalog import ProductFilters
from .config import load_settings
from .errors import StorefrontError
from .log import configure_logging
from .models import OrderStatus
from .orders import DELIVERY_OPTIONS
from .services import Services, build_services


def get_services() -> Services:
    """Build services for the configured storage backend."""
    settings = load_settings()
    configure_logging(settings.log_level, json=settings.log_json or settings.is_production)
    if settings.storage_backend == "memory":
        print(
            "Note: STOREFRONT_STORAGE_BACKEND=memory, data is not shared with a running server.",
            file=sys.stderr,
        )
    return build_services(settings)


def cmd_products(args: argparse.Namespace) -> int:
    """List catalog products."""
    try:
        services = get_services()
        filters = ProductFilters(category_id=args.category, search=args.search)
        page = services.catalog.list_products(filters, page=1, limit=args.limit)

        if not page.items:
            print("No products found.")
            return 0

        if args.json:
            print(json.dumps([p.to_dict() for p in page.items], indent=2))
        else:
            print(f"Products ({len(page.items)} of {page.total}):")
            print()
            for p in page.items:
                print(f"  {p.id:<10} {p.price:>9}  stock {p.stock:<4} {p.name}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_list(args: argparse.Namespace) -> int:
    """List orders, newest first."""
    try:
        services = get_services()
        status = OrderStatus(args.status) if args.status else None
        orders = services.orders.list_all(status)

        if not orders:
            print("No orders found.")
            return 0

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2))
        else:
            print(f"Orders ({len(orders)}):")
            print()
            for o in orders:
                owner = o.user_id or o.guest_email or "-"
                print(
                    f"  {o.order_number}  {o.status.value:<10} {o.payment_status.value:<8} "
                    f"{o.total:>9}  {owner}"
                )
                print(f"           {o.id}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_set_status(args: argparse.Namespace) -> int:
    """Move an order to a new status."""
    try:
        services = get_services()
        order = services.orders.update_status(args.order_id, OrderStatus(args.status), args.note)

        print(f"Order {order.order_number} is now {order.status.value}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_delivery_options(args: argparse.Namespace) -> int:
    """Show the delivery tiers offered at checkout."""
    options = list(DELIVERY_OPTIONS.values())
    if args.json:
        print(json.dumps([o.to_dict() for o in options], indent=2))
        return 0

    for o in options:
        print(f"  {o.id:<10} {o.price:>6}  {o.name} ({o.description})")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        settings = load_settings()
        host = args.host or settings.host
        port = args.port or settings.port

        print("Starting storefront API server...")
        print(f"Environment: {settings.environment}")
        print(f"Storage: {settings.storage_backend}")
        print(f"API docs: http://{host}:{port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "storefront.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=host,
            port=port,
            reload=args.reload,
            workers=1,  # Carts and orders live in one process
        )
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Catalog, cart and checkout API server and admin tools.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", help="Bind address (default: STOREFRONT_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (default: STOREFRONT_PORT)")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes"
    )

    # products
    products_parser = subparsers.add_parser("products", help="List catalog products")
    products_parser.add_argument("--category", "-c", help="Category ID")
    products_parser.add_argument("--search", "-s", help="Search name and description")
    products_parser.add_argument("--limit", type=int, default=50, help="Max products to show")
    products_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # orders
    orders_parser = subparsers.add_parser("orders", help="Inspect and manage orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument(
        "--status", choices=[s.value for s in OrderStatus], help="Only orders in this status"
    )
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    orders_status_parser = orders_subparsers.add_parser(
        "set-status", help="Change an order's status"
    )
    orders_status_parser.add_argument("order_id", help="Order ID")
    orders_status_parser.add_argument(
        "status", choices=[s.value for s in OrderStatus], help="New status"
    )
    orders_status_parser.add_argument("--note", help="Timeline note")

    # delivery-options
    delivery_parser = subparsers.add_parser(
        "delivery-options", help="Show delivery tiers"
    )
    delivery_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    # Handle orders subcommands
    if args.command == "orders":
        if not getattr(args, "orders_command", None):
            parser.parse_args(["orders", "--help"])
            return 0
        if args.orders_command == "list":
            return cmd_orders_list(args)
        elif args.orders_command == "set-status":
            return cmd_orders_set_status(args)

    commands = {
        "products": cmd_products,
        "delivery-options": cmd_delivery_options,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
