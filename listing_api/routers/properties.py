"""
Property API endpoints: public search and detail, back-office management,
bulk delete, CSV export and spreadsheet import.
"""

from fastapi import APIRouter, Depends, File, Path, Query, Response, UploadFile, status
from typing import Optional

from listing_api.gateway import ListingGateway
from listing_api.models.property import MarketingType, PropertyType
from listing_api.schemas.filters import FilterCriteria, PRICE_UNBOUNDED
from listing_api.schemas.property import (
    BulkDeleteResponse,
    ImportResult,
    ListingPageResponse,
    PropertyCreate,
    PropertyIdsRequest,
    PropertyResponse,
    PropertyUpdate,
)
from listing_api.schemas.records import UserRecord
from listing_api.services.error_handler import ERROR_RESPONSES
from listing_api.services.export import EXPORT_FILENAME, export_properties_csv, import_properties_csv
from listing_api.services.listing import ListingService
from listing_api.utils.dependencies import get_gateway, get_listing_service, require_back_office
from listing_api.utils.exceptions import ValidationError
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["Properties"])

BACK_OFFICE_ERRORS = {code: ERROR_RESPONSES[code] for code in (401, 403, 422)}


@router.get(
    "",
    response_model=ListingPageResponse,
    summary="Search properties",
    description="One page of listings, newest first. Pass next_cursor back as cursor for the next page."
)
async def search_properties(
    region: str = Query("", max_length=120, description="Region, matched case-insensitively"),
    marketing_type: Optional[MarketingType] = Query(None, description="for_sale or for_rent"),
    property_type: Optional[PropertyType] = Query(None, alias="type", description="Property type"),
    price_min: int = Query(0, ge=0, description="Inclusive minimum price"),
    price_max: int = Query(PRICE_UNBOUNDED, ge=0, description="Inclusive maximum price"),
    bedrooms_min: int = Query(0, ge=0, description="Minimum bedrooms"),
    bathrooms_min: int = Query(0, ge=0, description="Minimum bathrooms"),
    cursor: Optional[str] = Query(None, description="Cursor returned with the previous page"),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingPageResponse:
    criteria = FilterCriteria(
        region=region,
        marketing_type=marketing_type,
        property_type=property_type,
        price_min=price_min,
        price_max=price_max,
        bedrooms_min=bedrooms_min,
        bathrooms_min=bathrooms_min,
    )
    page = await listing_service.search(criteria, cursor)
    return ListingPageResponse(
        properties=[PropertyResponse.from_record(record) for record in page.items],
        next_cursor=listing_service.gateway.format_cursor(page.next_cursor) if page.has_more else None,
        has_more=page.has_more,
        page_size=page.page_size,
    )


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create property",
    responses=BACK_OFFICE_ERRORS
)
async def create_property(
    property_data: PropertyCreate,
    current_user: UserRecord = Depends(require_back_office),
    listing_service: ListingService = Depends(get_listing_service)
) -> PropertyResponse:
    record = await listing_service.create_property(property_data)
    logger.info(f"Property {record.id} created by {current_user.email}")
    return PropertyResponse.from_record(record)


@router.post(
    "/bulk-delete",
    response_model=BulkDeleteResponse,
    summary="Delete selected properties",
    description="Deletes the selected properties. Media files and favorites referencing them are kept.",
    responses=BACK_OFFICE_ERRORS
)
async def bulk_delete_properties(
    selection: PropertyIdsRequest,
    current_user: UserRecord = Depends(require_back_office),
    listing_service: ListingService = Depends(get_listing_service)
) -> BulkDeleteResponse:
    deleted = await listing_service.bulk_delete(selection.ids)
    return BulkDeleteResponse(deleted=deleted)


@router.post(
    "/export",
    summary="Export selected properties as CSV",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}, **BACK_OFFICE_ERRORS}
)
async def export_properties(
    selection: PropertyIdsRequest,
    current_user: UserRecord = Depends(require_back_office),
    gateway: ListingGateway = Depends(get_gateway)
) -> Response:
    """Selected properties in selection order; ids that no longer exist are left out."""
    records = await gateway.get_properties(selection.ids)
    logger.info(f"{current_user.email} exported {len(records)} properties")
    return Response(
        content=export_properties_csv(records),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post(
    "/import",
    response_model=ImportResult,
    summary="Import properties from the office spreadsheet",
    responses=BACK_OFFICE_ERRORS
)
async def import_properties(
    file: UploadFile = File(..., description="CSV export of the listing spreadsheet"),
    current_user: UserRecord = Depends(require_back_office),
    gateway: ListingGateway = Depends(get_gateway)
) -> ImportResult:
    content = await file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded")
    result = await import_properties_csv(text, gateway)
    logger.info(f"{current_user.email} imported {result.imported} properties from {file.filename}")
    return result


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Get property",
    responses={404: ERROR_RESPONSES[404]}
)
async def get_property(
    property_id: str = Path(..., description="Property id"),
    listing_service: ListingService = Depends(get_listing_service)
) -> PropertyResponse:
    record = await listing_service.get_property(property_id)
    return PropertyResponse.from_record(record)


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Update property",
    description="Only the fields sent are changed.",
    responses={404: ERROR_RESPONSES[404], **BACK_OFFICE_ERRORS}
)
async def update_property(
    property_data: PropertyUpdate,
    property_id: str = Path(..., description="Property id"),
    current_user: UserRecord = Depends(require_back_office),
    listing_service: ListingService = Depends(get_listing_service)
) -> PropertyResponse:
    record = await listing_service.update_property(property_id, property_data)
    return PropertyResponse.from_record(record)


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property",
    responses={404: ERROR_RESPONSES[404], **BACK_OFFICE_ERRORS}
)
async def delete_property(
    property_id: str = Path(..., description="Property id"),
    current_user: UserRecord = Depends(require_back_office),
    listing_service: ListingService = Depends(get_listing_service)
) -> Response:
    await listing_service.delete_property(property_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
