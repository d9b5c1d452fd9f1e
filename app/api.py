"""HTTP route definitions for the reading store."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.schemas import Entry, EntryCreate
from datastore.entries import EntryTable, build_default_table
from models.records import SortKey
from services.recommender import SiteRecommender
from services.store_client import TOTAL_COUNT_HEADER
from settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def get_table() -> EntryTable:
    return build_default_table()


def get_recommender() -> SiteRecommender:
    return SiteRecommender(limit=get_settings().recommendation_count)


@router.post(
    "/api/entries",
    status_code=status.HTTP_201_CREATED,
    response_model=Entry,
    summary="Log a new glucose reading.",
)
async def create_entry(
    body: EntryCreate,
    table: EntryTable = Depends(get_table),
) -> Entry:
    entry = table.add(body)
    logger.info("Entry stored", extra={"entry_id": entry.id, "site": entry.punctureSpot})
    return entry


@router.get(
    "/api/entries",
    response_model=List[Entry],
    summary="List one page of readings in the requested order.",
)
async def list_entries(
    response: Response,
    sort_by: SortKey = Query(SortKey.time_desc, alias="sortBy"),
    page: int = Query(1, ge=1),
    size: int = Query(5, ge=1, le=100),
    table: EntryTable = Depends(get_table),
) -> List[Entry]:
    items, total = table.query(sort_by, page, size)
    response.headers[TOTAL_COUNT_HEADER] = str(total)
    return items


@router.get(
    "/api/entries/recommended-spots",
    response_model=List[str],
    summary="Puncture sites that have rested longest.",
)
async def recommended_spots(
    table: EntryTable = Depends(get_table),
    recommender: SiteRecommender = Depends(get_recommender),
) -> List[str]:
    return recommender.recommend(table.scan())


@router.delete(
    "/api/entries/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a reading.",
)
async def delete_entry(
    entry_id: int,
    table: EntryTable = Depends(get_table),
) -> Response:
    if not table.delete(entry_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entry {entry_id} not found.",
        )
    logger.info("Entry deleted", extra={"entry_id": entry_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
