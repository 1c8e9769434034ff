"""
Products API Endpoints

Catalog stock pages and units sold per product.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response

from ops_dashboard.export import (
    export_out_of_stock_products,
    export_out_of_stock_variants,
    export_product_units,
)
from ops_dashboard.models import DateRange
from ops_dashboard.serving.api.dependencies import csv_download, get_date_range, get_product_service
from ops_dashboard.services import ProductService

router = APIRouter()


def _dump(models) -> List[Dict[str, Any]]:
    return [m.model_dump(by_alias=True) for m in models]


@router.get("/stock/summary")
async def get_stock_summary(
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    """Out-of-stock counts and their share of the catalog"""
    return await service.stock_summary()


@router.get("/out-of-stock")
async def list_out_of_stock_products(
    search: Optional[str] = Query(None, description="Matches title or external id"),
    service: ProductService = Depends(get_product_service),
) -> List[Dict[str, Any]]:
    return _dump(await service.out_of_stock(search))


@router.get("/out-of-stock/export.csv")
async def export_out_of_stock(
    search: Optional[str] = Query(None),
    service: ProductService = Depends(get_product_service),
) -> Response:
    products = await service.out_of_stock(search)
    return csv_download(export_out_of_stock_products(products), "productos_sin_stock")


@router.get("/variants-out-of-stock")
async def list_out_of_stock_variants(
    search: Optional[str] = Query(None, description="Matches product title, variant title or SKU"),
    service: ProductService = Depends(get_product_service),
) -> List[Dict[str, Any]]:
    return _dump(await service.out_of_stock_variants(search))


@router.get("/variants-out-of-stock/export.csv")
async def export_variants_out_of_stock(
    search: Optional[str] = Query(None),
    service: ProductService = Depends(get_product_service),
) -> Response:
    variants = await service.out_of_stock_variants(search)
    return csv_download(export_out_of_stock_variants(variants), "variantes_sin_stock")


@router.get("/units")
async def get_units_sold(
    date_range: DateRange = Depends(get_date_range),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.units(date_range)


@router.get("/units/export.csv")
async def export_units_sold(
    date_range: DateRange = Depends(get_date_range),
    service: ProductService = Depends(get_product_service),
) -> Response:
    units = await service.units(date_range)
    return csv_download(export_product_units(units["products"]), "unidades_vendidas")
