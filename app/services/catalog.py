"""Read-only catalog lookups for metal and stone types."""
import sqlite3
from typing import Optional, Union

from app.data.metals import derive_metal_factors
from app.services.calc import MetalType, StoneType

CatalogId = Union[int, str]


def _is_numeric_id(value: CatalogId) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and value.strip().isdigit()


def resolve_metal_factors(
    name: str,
    price_modifier: Optional[float],
    purity_factor: Optional[float] = None,
    type_multiplier: Optional[float] = None,
) -> tuple[float, float]:
    """Work out (purity_factor, type_multiplier) for a metal row.

    Explicit columns win. Otherwise a positive price_modifier (percent) is the
    authoritative combined factor. Otherwise the name decides.
    """
    if purity_factor is not None:
        return purity_factor, type_multiplier if type_multiplier is not None else 1.0

    if price_modifier and price_modifier > 0:
        factor = price_modifier / 100
        purity = min(factor, 1.0)
        return purity, max(1.0, factor / purity)

    purity, multiplier = derive_metal_factors(name)
    if type_multiplier is not None:
        multiplier = type_multiplier
    return purity, multiplier


def metal_type_from_row(row: sqlite3.Row) -> MetalType:
    purity, multiplier = resolve_metal_factors(
        row['name'],
        row['price_modifier'],
        row['purity_factor'],
        row['type_multiplier'],
    )
    return MetalType(
        id=row['id'],
        name=row['name'],
        purity_factor=purity,
        type_multiplier=multiplier,
        price_modifier_percent=row['price_modifier'] or 0.0,
    )


def stone_type_from_row(row: sqlite3.Row) -> StoneType:
    return StoneType(
        id=row['id'],
        name=row['name'],
        price_per_carat=row['price_per_carat'],
        category=row['category'],
        quality=row['quality'],
        size=row['size'],
    )


class CatalogRepository:
    """Looks up active catalog rows by numeric id or by case-insensitive name."""

    def __init__(self, db: sqlite3.Connection):
        self._db = db

    def _find(self, table: str, key: CatalogId) -> Optional[sqlite3.Row]:
        if _is_numeric_id(key):
            return self._db.execute(
                f'SELECT * FROM {table} WHERE id = ? AND is_active = 1',
                (int(key),)
            ).fetchone()
        return self._db.execute(
            f'SELECT * FROM {table} WHERE name = ? COLLATE NOCASE AND is_active = 1',
            (str(key).strip(),)
        ).fetchone()

    def get_metal_type(self, key: CatalogId) -> Optional[MetalType]:
        row = self._find('metal_types', key)
        return metal_type_from_row(row) if row else None

    def get_stone_type(self, key: CatalogId) -> Optional[StoneType]:
        row = self._find('stone_types', key)
        return stone_type_from_row(row) if row else None

    def list_metal_types(self) -> list[MetalType]:
        rows = self._db.execute(
            'SELECT * FROM metal_types WHERE is_active = 1 ORDER BY display_order, name'
        ).fetchall()
        return [metal_type_from_row(row) for row in rows]

    def list_stone_types(self) -> list[StoneType]:
        rows = self._db.execute(
            'SELECT * FROM stone_types WHERE is_active = 1 ORDER BY display_order, name'
        ).fetchall()
        return [stone_type_from_row(row) for row in rows]
