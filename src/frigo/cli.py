"""Command-line interface for Frigo."""

from __future__ import annotations

import json
import time
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, NoReturn, Optional

import typer
from prometheus_client import generate_latest

from frigo.config import get_settings
from frigo.errors import FrigoError
from frigo.integrations.openfoodfacts import OpenFoodFactsClient, add_scanned_product
from frigo.inventory.expiry import ExpiryBucket, classify
from frigo.inventory.query import ExpiryFilter, InventoryQuery, PriceRange, SortOrder, query_items
from frigo.inventory.stats import compute_stats
from frigo.inventory.store import InventoryStore, build_inventory_store
from frigo.inventory.watcher import ExpiryReport, ExpiryWatcher
from frigo.logging_utils import configure_logging
from frigo.models.inventory import InventoryItem
from frigo.models.product import Product
from frigo.transfer import ExportFormat, export_data, export_to_path, import_from_path

app = typer.Typer(help="Frigo fridge inventory commands.")

DATE_FORMATS = ["%Y-%m-%d", "%d/%m/%Y"]


@app.callback()
def _setup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)


def _store() -> InventoryStore:
    return build_inventory_store(get_settings())


def _fail(message: str) -> NoReturn:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _as_date(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value is not None else None


def _describe(item: InventoryItem, store: InventoryStore) -> str:
    status = classify(item, store.today(), soon_days=store.soon_days)
    parts = [
        item.id,
        f"{item.product.name} ({item.product.brand})",
        f"x{item.quantity}",
        item.category.value,
    ]
    if item.expiry_date is not None:
        expiry = f"DLC {item.expiry_date.isoformat()}"
        if status.bucket is ExpiryBucket.EXPIRED:
            expiry += " [expired]"
        elif status.bucket is ExpiryBucket.SOON:
            expiry += f" [{status.days} day(s) left]"
        parts.append(expiry)
    if item.current_price is not None:
        parts.append(f"{item.current_price:.2f} EUR @ {item.current_store or '?'}")
    return " | ".join(parts)


def _echo_items(items: Iterable[InventoryItem], store: InventoryStore, as_json: bool) -> None:
    items = list(items)
    if as_json:
        typer.echo(json.dumps([item.model_dump(mode="json") for item in items], indent=2))
        return
    if not items:
        typer.echo("No items.")
        return
    for item in items:
        typer.echo(_describe(item, store))


@app.command("list")
def list_items(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category filter."),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Text filter."),
    expiry: ExpiryFilter = typer.Option(ExpiryFilter.ALL, "--expiry", help="Expiry filter."),
    min_price: Optional[float] = typer.Option(None, "--min-price", min=0),
    max_price: Optional[float] = typer.Option(None, "--max-price", min=0),
    sort: SortOrder = typer.Option(SortOrder.DATE, "--sort", help="Sort order."),
    as_json: bool = typer.Option(False, "--json", help="Print items as JSON."),
) -> None:
    """List inventory items, filtered and sorted."""

    store = _store()
    try:
        query = InventoryQuery(
            category=category,
            text=search,
            expiry=expiry,
            price_range=PriceRange(min=min_price, max=max_price),
            sort_by=sort,
        )
    except ValueError as exc:
        _fail(f"Invalid filter: {exc}")
    items = query_items(store.get_all(), query, today=store.today(), soon_days=store.soon_days)
    _echo_items(items, store, as_json)


@app.command()
def add(
    name: str = typer.Argument(..., help="Product name."),
    brand: Optional[str] = typer.Option(None, "--brand", "-b"),
    quantity: int = typer.Option(1, "--quantity", "-q", min=1),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    expiry: Optional[datetime] = typer.Option(None, "--expiry", formats=DATE_FORMATS),
    price: Optional[float] = typer.Option(None, "--price", min=0),
    shop: Optional[str] = typer.Option(None, "--store"),
) -> None:
    """Add units of a product, merging with an existing item of the same identity."""

    try:
        product = Product(name=name, brand=brand)
    except ValueError as exc:
        _fail(f"Invalid product: {exc}")
    store = _store()
    try:
        saved = store.add(
            product,
            quantity=quantity,
            category=category,
            expiry_date=_as_date(expiry),
            price=price,
            store=shop,
        )
    except (FrigoError, ValueError) as exc:
        _fail(str(exc))
    if not saved:
        _fail("Unable to save the inventory.")
    item = store.get_by_product(product)
    typer.echo(f"Added {quantity} x {product.name}; now {item.quantity if item else quantity} in stock.")


@app.command()
def update(
    item_id: str = typer.Argument(..., help="Item id."),
    name: Optional[str] = typer.Option(None, "--name"),
    brand: Optional[str] = typer.Option(None, "--brand"),
    quantity: Optional[int] = typer.Option(None, "--quantity", "-q", min=0),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    expiry: Optional[datetime] = typer.Option(None, "--expiry", formats=DATE_FORMATS),
    price: Optional[float] = typer.Option(None, "--price", min=0),
    shop: Optional[str] = typer.Option(None, "--store"),
) -> None:
    """Change fields of an existing item."""

    store = _store()
    item = store.get(item_id)
    if item is None:
        _fail(f"Inventory item {item_id} not found")

    patch: dict[str, object] = {}
    if name is not None or brand is not None:
        try:
            fields = item.product.model_dump()
            if name is not None:
                fields["name"] = name
            if brand is not None:
                fields["brand"] = brand
            patch["product"] = Product(**fields)
        except ValueError as exc:
            _fail(f"Invalid product: {exc}")
    if quantity is not None:
        patch["quantity"] = quantity
    if category is not None:
        patch["category"] = category
    if expiry is not None:
        patch["expiry_date"] = expiry.date()
    if price is not None:
        patch["current_price"] = price
    if shop is not None:
        patch["current_store"] = shop
    if not patch:
        _fail("Nothing to update.")

    try:
        saved = store.update(item_id, patch)
    except (FrigoError, ValueError) as exc:
        _fail(str(exc))
    if not saved:
        _fail("Unable to save the inventory.")
    typer.echo(f"Updated {item_id}.")


@app.command()
def remove(item_id: str = typer.Argument(..., help="Item id.")) -> None:
    """Remove an item from the inventory."""

    if not _store().remove(item_id):
        _fail("Unable to save the inventory.")
    typer.echo(f"Removed {item_id}.")


@app.command("exit")
def record_exit(
    item_id: str = typer.Argument(..., help="Item id."),
    quantity: int = typer.Argument(..., help="Units taken out."),
    reason: Optional[str] = typer.Option(None, "--reason", "-r"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n"),
    exit_date: Optional[datetime] = typer.Option(None, "--date", formats=DATE_FORMATS),
) -> None:
    """Take units out of stock and record why."""

    store = _store()
    try:
        entry = store.record_exit(
            item_id, quantity, reason=reason, notes=notes, exit_date=_as_date(exit_date)
        )
    except (FrigoError, ValueError) as exc:
        _fail(str(exc))
    if entry is None:
        _fail("Unable to save the inventory.")
    remaining = store.get(item_id)
    typer.echo(
        f"Recorded exit of {entry.quantity} unit(s) on {entry.date.isoformat()}; "
        f"{remaining.quantity if remaining else 0} left."
    )


@app.command()
def expiring(as_json: bool = typer.Option(False, "--json")) -> None:
    """Show expired items and items reaching their DLC soon."""

    store = _store()
    today = store.today()
    expired = store.get_expired(today)
    soon = store.get_expiring_soon(today)
    if as_json:
        payload = {
            "expired": [item.model_dump(mode="json") for item in expired],
            "expiring_soon": [item.model_dump(mode="json") for item in soon],
        }
        typer.echo(json.dumps(payload, indent=2))
        return
    typer.echo(f"Expired ({len(expired)}):")
    for item in expired:
        typer.echo(f"  {_describe(item, store)}")
    typer.echo(f"Expiring within {store.soon_days} day(s) ({len(soon)}):")
    for item in soon:
        typer.echo(f"  {_describe(item, store)}")


@app.command()
def prices(item_id: str = typer.Argument(..., help="Item id.")) -> None:
    """Show the price history of an item."""

    store = _store()
    item = store.get(item_id)
    if item is None:
        _fail(f"Inventory item {item_id} not found")
    if not item.price_history:
        typer.echo("No price history.")
        return
    for entry in item.price_history:
        typer.echo(f"{entry.date.date().isoformat()}  {entry.price:.2f} EUR  {entry.store}")
    summary = store.price_summary(item_id)
    if summary is not None:
        typer.echo(
            f"lowest {summary.lowest.price:.2f} | highest {summary.highest.price:.2f} | "
            f"average {summary.average:.2f} over {summary.count} purchase(s)"
        )
    variation = store.price_variation(item_id)
    if variation is not None:
        change = (
            f" ({variation.percentage_change:+.1f}%)"
            if variation.percentage_change is not None
            else ""
        )
        typer.echo(f"last change {variation.amount:+.2f} EUR{change}")


@app.command()
def stats() -> None:
    """Print inventory statistics as JSON."""

    store = _store()
    result = compute_stats(
        store.get_all(), store.today(), soon_days=store.soon_days, tz=store.tz
    )
    typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))


@app.command("export")
def export_command(
    path: Optional[Path] = typer.Argument(None, help="Output file; stdout when omitted."),
    fmt: Optional[ExportFormat] = typer.Option(None, "--format", "-f"),
) -> None:
    """Export the inventory as JSON, CSV or a shopping list."""

    store = _store()
    if path is None:
        typer.echo(export_data(store, fmt or ExportFormat.JSON), nl=False)
        return
    try:
        count = export_to_path(store, path, fmt)
    except (ValueError, OSError) as exc:
        _fail(str(exc))
    typer.echo(f"Exported {count} item(s) to {path}.")


@app.command("import")
def import_command(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to import."),
    fmt: Optional[ExportFormat] = typer.Option(None, "--format", "-f"),
    replace: bool = typer.Option(False, "--replace", help="Replace the inventory instead of merging."),
) -> None:
    """Import items from a JSON or CSV file."""

    try:
        summary = import_from_path(_store(), path, fmt, merge=not replace)
    except (FrigoError, ValueError, OSError) as exc:
        _fail(str(exc))
    typer.echo(
        f"Imported {summary.imported} of {summary.total} record(s): "
        f"{summary.created} created, {summary.updated} updated, {summary.skipped} skipped."
    )
    for reason, count in sorted(summary.skip_reasons.items()):
        typer.echo(f"  skipped {count} x {reason}")


@app.command()
def clear(yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation.")) -> None:
    """Remove every item."""

    if not yes:
        typer.confirm("Remove every item from the inventory?", abort=True)
    if not _store().clear():
        _fail("Unable to save the inventory.")
    typer.echo("Inventory cleared.")


@app.command()
def scan(
    barcode: str = typer.Argument(..., help="EAN/UPC barcode."),
    quantity: int = typer.Option(1, "--quantity", "-q", min=1),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    expiry: Optional[datetime] = typer.Option(None, "--expiry", formats=DATE_FORMATS),
    price: Optional[float] = typer.Option(None, "--price", min=0),
    shop: Optional[str] = typer.Option(None, "--store"),
) -> None:
    """Look a barcode up on Open Food Facts and add the product."""

    added = add_scanned_product(
        _store(),
        OpenFoodFactsClient(),
        barcode,
        quantity=quantity,
        category=category,
        expiry_date=_as_date(expiry),
        price=price,
        store=shop,
    )
    if not added:
        _fail(f"Product {barcode} could not be added.")
    typer.echo(f"Added product {barcode}.")


def _print_report(report: ExpiryReport) -> None:
    typer.echo(
        f"[{report.day.isoformat()}] {len(report.expired)} expired, "
        f"{len(report.expiring_soon)} expiring soon"
    )
    for item in report.expired:
        typer.echo(f"  expired: {item.product.name} ({item.expiry_date})")
    for item in report.expiring_soon:
        typer.echo(f"  soon: {item.product.name} ({item.expiry_date})")


@app.command()
def watch(
    once: bool = typer.Option(False, "--once", help="Scan a single time then exit."),
    interval: Optional[float] = typer.Option(None, "--interval", help="Override scan interval (seconds)."),
) -> None:
    """Periodically report expired and expiring items."""

    settings = get_settings()
    watcher = ExpiryWatcher(
        _store(),
        _print_report,
        interval=interval or settings.expiry_check_interval,
    )
    if once:
        report = watcher.poll_once()
        if not report:
            typer.echo("Nothing expired or expiring soon.")
        return

    typer.echo("Starting expiry watcher. Press Ctrl+C to stop.")
    watcher.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        typer.echo("Stopping watcher…")
        watcher.stop()


@app.command()
def metrics() -> None:
    """Print the Prometheus metrics of this process."""

    typer.echo(generate_latest().decode("utf-8"), nl=False)


def main(argv: Optional[list[str]] = None) -> None:
    """Console script entry point."""
    app(prog_name="frigo", args=argv)


if __name__ == "__main__":
    main()
