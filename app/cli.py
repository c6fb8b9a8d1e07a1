"""Flask CLI commands for catalog management, market data and quotes."""
import csv
import json
import os
import click
from flask import current_app
from flask.cli import with_appcontext

from app.db import get_db, init_db, get_db_path
from app.services.catalog import CatalogRepository
from app.services.errors import InvalidInputError


def _optional_float(value):
    return float(value) if value not in (None, '') else None


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Initialize the SQLite database with schema."""
    init_db()
    click.echo(f'Initialized database at {get_db_path()}')


@click.command('import-metal-types-csv')
@click.argument('csv_path', type=click.Path(exists=True))
@with_appcontext
def import_metal_types_csv_command(csv_path):
    """Import metal types from CSV file.

    CSV format: name,description,price_modifier,purity_factor,type_multiplier,display_order,color
    Example: 18K Yellow Gold,,75,,,1,#D4AF37
    """
    count = import_metal_types_csv(csv_path)
    click.echo(f'Imported {count} metal type records from {csv_path}')


@click.command('import-stone-types-csv')
@click.argument('csv_path', type=click.Path(exists=True))
@with_appcontext
def import_stone_types_csv_command(csv_path):
    """Import stone types from CSV file.

    CSV format: name,description,price_per_carat,category,quality,size,display_order,color
    Example: Natural Diamond,,56000,diamond,natural,,1,#FFFFFF
    """
    count = import_stone_types_csv(csv_path)
    click.echo(f'Imported {count} stone type records from {csv_path}')


@click.command('seed-catalog')
@with_appcontext
def seed_catalog_command():
    """Initialize DB and import all seed CSVs from data/seed/."""
    init_db()
    click.echo(f'Initialized database at {get_db_path()}')

    data_dir = current_app.config.get('DATA_DIR', os.path.join(os.path.dirname(__file__), '..', 'data'))
    seed_dir = os.path.join(data_dir, 'seed')

    if not os.path.exists(seed_dir):
        click.echo(f'Seed directory not found: {seed_dir}')
        return

    metals_path = os.path.join(seed_dir, 'metal_types.csv')
    if os.path.exists(metals_path):
        count = import_metal_types_csv(metals_path)
        click.echo(f'Imported {count} metal type records')
    else:
        click.echo('No metal_types.csv found in seed directory')

    stones_path = os.path.join(seed_dir, 'stone_types.csv')
    if os.path.exists(stones_path):
        count = import_stone_types_csv(stones_path)
        click.echo(f'Imported {count} stone type records')
    else:
        click.echo('No stone_types.csv found in seed directory')

    db = get_db()
    db.execute(
        "INSERT OR REPLACE INTO meta (key, value, updated_at) VALUES (?, ?, datetime('now'))",
        ('last_seed', 'completed')
    )
    db.commit()
    click.echo('Seed complete!')


def import_metal_types_csv(csv_path: str) -> int:
    """Import metal types from CSV file. Returns count of records imported."""
    db = get_db()
    count = 0

    with open(csv_path, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for row in reader:
            db.execute('''
                INSERT INTO metal_types
                    (name, description, price_modifier, purity_factor, type_multiplier, display_order, color)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    description = excluded.description,
                    price_modifier = excluded.price_modifier,
                    purity_factor = excluded.purity_factor,
                    type_multiplier = excluded.type_multiplier,
                    display_order = excluded.display_order,
                    color = excluded.color
            ''', (
                row['name'].strip(),
                row.get('description') or None,
                _optional_float(row.get('price_modifier')) or 0.0,
                _optional_float(row.get('purity_factor')),
                _optional_float(row.get('type_multiplier')),
                int(row.get('display_order') or 0),
                row.get('color') or None,
            ))
            count += 1

    db.commit()
    return count


def import_stone_types_csv(csv_path: str) -> int:
    """Import stone types from CSV file. Returns count of records imported."""
    db = get_db()
    count = 0

    with open(csv_path, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for row in reader:
            db.execute('''
                INSERT INTO stone_types
                    (name, description, price_per_carat, category, quality, size, display_order, color)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    description = excluded.description,
                    price_per_carat = excluded.price_per_carat,
                    category = excluded.category,
                    quality = excluded.quality,
                    size = excluded.size,
                    display_order = excluded.display_order,
                    color = excluded.color
            ''', (
                row['name'].strip(),
                row.get('description') or None,
                float(row['price_per_carat']),
                row.get('category') or None,
                row.get('quality') or None,
                row.get('size') or None,
                int(row.get('display_order') or 0),
                row.get('color') or None,
            ))
            count += 1

    db.commit()
    return count


@click.command('list-catalog')
@with_appcontext
def list_catalog_command():
    """List active metal and stone types with their resolved pricing factors."""
    catalog = CatalogRepository(get_db())

    click.echo('Metal types:')
    for metal in catalog.list_metal_types():
        click.echo(
            f"  {metal.id:>4}  {metal.name}  "
            f"purity {metal.purity_factor:g} x {metal.type_multiplier:g} = {metal.factor:g}"
        )

    click.echo('Stone types:')
    for stone in catalog.list_stone_types():
        category = f" ({stone.category})" if stone.category else ''
        click.echo(f"  {stone.id:>4}  {stone.name}  {stone.price_per_carat:,g}/ct{category}")


@click.command('refresh-market-data')
@with_appcontext
def refresh_market_data_command():
    """Refresh the gold price and exchange rate caches once, synchronously."""
    service = current_app.extensions['pricing_service']
    for key, result in service.refresh_all().items():
        if result['success']:
            click.echo(f"{key}: {result['value']} ({result['source']})")
        else:
            click.echo(f"{key}: refresh failed - {result['error']}")


def _parse_stone_option(value: str) -> dict:
    """Parse 'ID:CARATS' (ID may be a name containing spaces)."""
    type_id, sep, carats = value.rpartition(':')
    if not sep or not type_id:
        raise click.BadParameter(f"Expected ID:CARATS, got '{value}'")
    return {'stoneTypeId': type_id, 'caratWeight': carats}


@click.command('quote')
@click.option('--metal', 'metal_type_id', default=None, help='Metal type id or name')
@click.option('--weight', 'metal_weight', default=0.0, type=float, help='Metal weight in grams')
@click.option('--primary', default=None, help='Primary stone as ID:CARATS')
@click.option('--secondary', multiple=True, help='Secondary stone as ID:CARATS (repeatable)')
@click.option('--other', default=None, help='Other stone as ID:CARATS')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw JSON response')
@with_appcontext
def quote_command(metal_type_id, metal_weight, primary, secondary, other, as_json):
    """Price an item from the command line using current market data."""
    body = {
        'metalTypeId': metal_type_id,
        'metalWeight': metal_weight,
        'primaryStone': _parse_stone_option(primary) if primary else None,
        'secondaryStones': [_parse_stone_option(s) for s in secondary],
        'otherStone': _parse_stone_option(other) if other else None,
    }

    service = current_app.extensions['pricing_service']
    try:
        result = service.calculate_price(body, CatalogRepository(get_db()))
    except InvalidInputError as e:
        raise click.ClickException(e.message)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    inputs = result['inputs']
    click.echo(f"Gold: {inputs['goldPrice']} INR/g ({inputs['goldPriceSource']})")
    click.echo(f"USD->INR: {inputs['exchangeRate']} ({inputs['exchangeRateSource']})")
    for currency in ('inr', 'usd'):
        quote = result[currency]
        click.echo(f"{quote['currency']} {quote['price']:,}")
        for key, amount in quote['breakdown'].items():
            click.echo(f"  {key}: {amount:,}")


def register_cli(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(init_db_command)
    app.cli.add_command(import_metal_types_csv_command)
    app.cli.add_command(import_stone_types_csv_command)
    app.cli.add_command(seed_catalog_command)
    app.cli.add_command(list_catalog_command)
    app.cli.add_command(refresh_market_data_command)
    app.cli.add_command(quote_command)
