"""
Spreadsheet export.

CSV in the layout Spanish-locale Excel opens directly: UTF-8 with BOM,
``;`` as separator, values quoted only when they contain the separator, a
quote or a line break.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import polars as pl

from ops_dashboard.aggregation.inventory import ProductStock, VariantStock
from ops_dashboard.formatting import format_currency_csv, format_date_csv
from ops_dashboard.models import (
    CustomerWithMetrics,
    Order,
    fulfillment_status_label,
    payment_status_label,
)

BOM = "\ufeff"
SEPARATOR = ";"

Column = Tuple[str, Callable[[Any], Any]]


def _cell(value: Any) -> Optional[str]:
    # polars quotes empty strings; blanks go out as nulls instead
    if value is None or value == "":
        return None
    return str(value)


def export_csv(rows: Sequence[Any], columns: Sequence[Column]) -> bytes:
    """
    Render rows to CSV bytes.

    Args:
        rows: Records handed to each column accessor
        columns: ``(header, accessor)`` pairs; None renders as an empty cell
    """
    data = {header: [_cell(accessor(row)) for row in rows] for header, accessor in columns}
    frame = pl.DataFrame(data, schema={header: pl.Utf8 for header, _ in columns})
    return (BOM + frame.write_csv(separator=SEPARATOR)).encode("utf-8")


def customer_columns(tz: Optional[str] = None) -> List[Column]:
    """Columns of the customers export"""
    return [
        ("Nombre", lambda c: c.full_name),
        ("Email", lambda c: c.email),
        ("Telefono", lambda c: c.phone or ""),
        ("Grupo", lambda c: c.group),
        ("Ordenes", lambda c: c.order_count),
        ("Total Gastado", lambda c: format_currency_csv(c.total_spent)),
        ("Ticket Promedio", lambda c: format_currency_csv(c.avg_order_value)),
        ("Ultima Compra", lambda c: format_date_csv(c.last_order_date, tz)),
        ("Dias sin Comprar", lambda c: "N/A" if c.days_since_last_order is None else c.days_since_last_order),
    ]


def export_customers(customers: Sequence[CustomerWithMetrics], tz: Optional[str] = None) -> bytes:
    return export_csv(customers, customer_columns(tz))


def order_columns(tz: Optional[str] = None) -> List[Column]:
    """Columns of the orders export"""
    return [
        ("Orden", lambda o: o.id if o.display_id is None else f"#{o.display_id}"),
        ("Fecha", lambda o: format_date_csv(o.created_at, tz)),
        ("Email", lambda o: o.email),
        ("Estado Pago", lambda o: payment_status_label(o.payment_status or o.status or "unknown")),
        ("Estado Envio", lambda o: fulfillment_status_label(o.fulfillment_status or "unknown")),
        ("Items", lambda o: len(o.items)),
        ("Total", lambda o: format_currency_csv(o.total)),
    ]


def export_orders(orders: Sequence[Order], tz: Optional[str] = None) -> bytes:
    return export_csv(orders, order_columns(tz))


OUT_OF_STOCK_PRODUCT_COLUMNS: List[Column] = [
    ("Producto", lambda p: p.title),
    ("ID Externo", lambda p: p.external_id or ""),
    ("Variantes", lambda p: len(p.variants)),
    ("Stock Total", lambda p: p.total_stock),
]

OUT_OF_STOCK_VARIANT_COLUMNS: List[Column] = [
    ("Producto", lambda v: v.product_title),
    ("Variante", lambda v: v.title),
    ("SKU", lambda v: v.sku or ""),
    ("Barcode", lambda v: v.barcode or ""),
    ("Stock", lambda v: v.inventory_quantity),
]

UNITS_COLUMNS: List[Column] = [
    ("Producto", lambda p: p["name"]),
    ("Unidades", lambda p: p["quantity"]),
    ("Ordenes", lambda p: p["order_count"]),
    ("% del Total", lambda p: f"{p['share']:.1f}%"),
]


def export_out_of_stock_products(products: Sequence[ProductStock]) -> bytes:
    return export_csv(products, OUT_OF_STOCK_PRODUCT_COLUMNS)


def export_out_of_stock_variants(variants: Sequence[VariantStock]) -> bytes:
    return export_csv(variants, OUT_OF_STOCK_VARIANT_COLUMNS)


def export_product_units(rows: Sequence[Dict[str, Any]]) -> bytes:
    return export_csv(rows, UNITS_COLUMNS)
