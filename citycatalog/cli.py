"""Command line entry point for the local city catalog.

Examples::

    city-catalog load
    city-catalog refresh
    city-catalog info
    city-catalog search "san" --page 1
    city-catalog search "" --favorites
    city-catalog favorite 707860
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from citycatalog.errors import CatalogError
from citycatalog.schemas.catalog import DataSourceInfo
from citycatalog.schemas.city import City
from citycatalog.schemas.pagination import MAX_PAGE_SIZE
from citycatalog.schemas.search import SearchRequest
from citycatalog.services.dependencies import CatalogServices, build_services
from citycatalog.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)

console = Console()


def _page_number(value: str) -> int:
    page = int(value)
    if page < 0:
        raise argparse.ArgumentTypeError(f"page must be 0 or greater, got {page}")
    return page


def _page_size(value: str) -> int:
    size = int(value)
    if not 1 <= size <= MAX_PAGE_SIZE:
        raise argparse.ArgumentTypeError(
            f"page size must be between 1 and {MAX_PAGE_SIZE}, got {size}"
        )
    return size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="city-catalog", description="Manage and query the local city catalog"
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("load", help="Load the catalog, refreshing it when stale")
    subcommands.add_parser("refresh", help="Download the catalog regardless of age")
    subcommands.add_parser("info", help="Show catalog size, favorites and freshness")
    subcommands.add_parser("clear", help="Delete every stored city")

    search_parser = subcommands.add_parser("search", help="Prefix search")
    search_parser.add_argument("query", help="City or country prefix")
    search_parser.add_argument("--page", type=_page_number, default=0)
    search_parser.add_argument("--page-size", type=_page_size, default=None)
    search_parser.add_argument(
        "--favorites", action="store_true", help="Only search favorite cities"
    )

    favorite_parser = subcommands.add_parser(
        "favorite", help="Toggle the favorite flag of a city"
    )
    favorite_parser.add_argument("city_id", type=int)
    return parser


def _print_info(info: DataSourceInfo, services: CatalogServices) -> None:
    state = services.catalog.cache_state(info)
    last_updated = info.last_updated.isoformat() if info.last_updated else "never"
    console.print(
        f"[cyan]{info.total_cities}[/cyan] cities, "
        f"[cyan]{info.favorites_count}[/cyan] favorites, "
        f"updated {last_updated} ([bold]{state.value}[/bold], data v{info.data_version})"
    )


def _print_cities(cities: Sequence[City], *, title: str) -> None:
    table = Table("ID", "City", "Lat", "Lon", "★", title=title)
    for city in cities:
        table.add_row(
            str(city.id),
            city.display_name,
            f"{city.coord.lat:.4f}",
            f"{city.coord.lon:.4f}",
            "★" if city.is_favorite else "",
        )
    console.print(table)


async def run_command(args: argparse.Namespace, services: CatalogServices) -> int:
    """Execute one parsed command against ``services``; returns an exit code."""

    await services.database.initialize()
    try:
        if args.command == "load":
            _print_info(await services.catalog.execute(), services)
        elif args.command == "refresh":
            _print_info(await services.catalog.force_refresh(), services)
        elif args.command == "info":
            _print_info(await services.catalog.get_data_info(), services)
        elif args.command == "clear":
            await services.catalog.clear_catalog()
            console.print("[green]✓ Catalog cleared[/green]")
        elif args.command == "search":
            page = await services.search.execute(
                SearchRequest(
                    query=args.query,
                    page=args.page,
                    page_size=args.page_size or services.settings.search_page_size,
                    show_only_favorites=args.favorites,
                )
            )
            _print_cities(
                page.items,
                title=(
                    f"Page {page.pagination.current_page + 1}/"
                    f"{max(page.pagination.total_pages, 1)} "
                    f"({page.pagination.total_items} matches)"
                ),
            )
            if page.has_more_pages:
                console.print(f"More results: --page {args.page + 1}")
        elif args.command == "favorite":
            city = await services.favorites.toggle_favorite(args.city_id)
            verb = "added to" if city.is_favorite else "removed from"
            console.print(f"[green]✓ {city.display_name} {verb} favorites[/green]")
    except CatalogError as exc:
        logger.debug("Command %s failed: %s", args.command, exc.technical_message)
        console.print(f"[red]{exc.user_message}[/red] [dim]({exc.technical_message})[/dim]")
        return 1
    return 0


async def _main(args: argparse.Namespace, settings: AppSettings) -> int:
    services = build_services(settings)
    try:
        return await run_command(args, services)
    except CatalogError as exc:
        console.print(f"[red]{exc.user_message}[/red] [dim]({exc.technical_message})[/dim]")
        return 1
    finally:
        await services.database.dispose()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level_numeric,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return asyncio.run(_main(args, settings))


if __name__ == "__main__":
    raise SystemExit(main())
