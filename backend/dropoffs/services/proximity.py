"""
Proximity Query Service
=======================
Nearest drop-off search against a PostGIS table.

The statement ranks first and filters second:

1. ``ST_Distance`` between each row's geography and the query point,
   computed on the spheroid, in meters.
2. Order the whole table by that distance and keep the first
   ``row_limit`` rows (25 by default).
3. Of those, keep the rows closer than ``radius_meters``.

Because the radius is applied after the limit, a dense area can yield
fewer than ``row_limit`` features even when more in-radius rows exist
further down the ranking.  Bounding the ranked set keeps the scan cheap.

The store serializes the GeoJSON itself (``jsonb_build_object`` /
``jsonb_agg``); the result is read back as text and passed through
unparsed.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import Depends, Request
from geoalchemy2.functions import (
    ST_AsGeoJSON,
    ST_Distance,
    ST_GeogFromText,
    ST_GeogFromWKB,
)
from sqlalchemy import (
    Float,
    Integer,
    Select,
    String,
    Text,
    bindparam,
    cast,
    column,
    func,
    literal_column,
    select,
    table,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError

from dropoffs.config import Settings
from dropoffs.errors import QueryError
from dropoffs.models.database import ConnectionPool, get_pool
from dropoffs.spatial.geo import Coordinate, ProximityQuery, miles_to_meters

logger = logging.getLogger(__name__)

# Opaque GeoJSON text as produced by the store.
FeatureCollection = str


def _const(value: str):
    """SQL string literal for fixed JSON keys and type names."""
    return literal_column(f"'{value}'")


def _text_param(name: str, value: str):
    return cast(bindparam(name, value, type_=String), Text)


# ── Statement construction ─────────────────────────────────────────
def build_proximity_statement(query: ProximityQuery) -> Select:
    """
    Build the ranked, radius-filtered GeoJSON aggregation for ``query``.

    Every value is a bound parameter.  The table and column names are
    identifiers quoted by SQLAlchemy.

    The result has a single row and a single text column,
    ``feature_collection``.  When nothing is in range the ``features``
    array is empty rather than ``NULL``.
    """
    source = table(
        query.table_name,
        column(query.id_column),
        column(query.geometry_column),
        schema=query.schema,
    )

    center = ST_GeogFromText(bindparam("center", query.center.to_ewkt(), type_=String))
    distance = ST_Distance(
        ST_GeogFromWKB(source.c[query.geometry_column]),
        center,
    ).label("distance")

    # Stage 1: rank the whole table, keep the nearest ``row_limit``.
    candidates = (
        select(literal_column("*"), distance)
        .select_from(source)
        .order_by(distance)
        .limit(bindparam("row_limit", query.row_limit, type_=Integer))
        .subquery("candidate")
    )

    properties = (
        func.to_jsonb(candidates.table_valued())
        .op("-")(_text_param("id_column", query.id_column))
        .op("-")(_text_param("geometry_column", query.geometry_column))
    )
    feature = func.jsonb_build_object(
        _const("type"), _const("Feature"),
        _const("id"), column(query.id_column),
        _const("geometry"), cast(ST_AsGeoJSON(column(query.geometry_column)), JSONB),
        _const("properties"), properties,
    ).label("feature")

    # Stage 2: drop ranked rows outside the radius.
    features = (
        select(feature)
        .select_from(candidates)
        .where(
            candidates.c.distance
            < bindparam("radius_meters", float(query.radius_meters), type_=Float)
        )
        .subquery("features")
    )

    collection = func.jsonb_build_object(
        _const("type"), _const("FeatureCollection"),
        _const("features"), func.coalesce(
            func.jsonb_agg(features.c.feature),
            literal_column("'[]'::jsonb"),
        ),
    )
    return select(cast(collection, Text).label("feature_collection"))


# ── Result adapter ─────────────────────────────────────────────────
def adapt_feature_collection(result: Result) -> FeatureCollection:
    """
    Read the aggregated document from the first row of ``result``.

    Raises
    ------
    QueryError
        If there is no row or the aggregate is ``NULL``.
    """
    row = result.first()
    if row is None:
        raise QueryError("proximity query returned no rows")
    document = row[0]
    if document is None:
        raise QueryError("proximity query returned a NULL feature collection")
    return document


# ── Service ────────────────────────────────────────────────────────
class DropoffQueryService:
    """
    Runs proximity searches on a shared ``ConnectionPool``.

    One connection is checked out per search and returned when the
    search finishes, fails or times out.
    """

    def __init__(self, pool: ConnectionPool, settings: Settings) -> None:
        self.pool = pool
        self.settings = settings

    def build_query(self, center: Coordinate) -> ProximityQuery:
        s = self.settings
        return ProximityQuery(
            center=center,
            radius_meters=miles_to_meters(s.search_radius_miles),
            table_name=s.dropoff_table,
            row_limit=s.candidate_limit,
            id_column=s.dropoff_id_column,
            geometry_column=s.dropoff_geometry_column,
            schema=s.dropoff_schema,
        )

    async def search(self, center_lat: str, center_lng: str) -> FeatureCollection:
        """Parse raw request values and run ``find_nearby``."""
        return await self.find_nearby(Coordinate.parse(center_lat, center_lng))

    async def find_nearby(self, center: Coordinate) -> FeatureCollection:
        """
        Return the drop-offs near ``center`` as a GeoJSON FeatureCollection.

        Raises
        ------
        QueryError
            On store errors, a ``NULL`` aggregate, or when the query runs
            longer than ``query_timeout_seconds``.
        """
        query = self.build_query(center)
        stmt = build_proximity_statement(query)
        timeout = self.settings.query_timeout_seconds

        try:
            return await asyncio.wait_for(self._execute(stmt), timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "Proximity query on %s timed out after %.1fs (center=%s)",
                query.table_name, timeout, center,
            )
            raise QueryError(f"query timed out after {timeout}s") from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "Proximity query on %s failed: %s", query.table_name, exc,
                exc_info=True,
            )
            raise QueryError(str(exc)) from exc

    async def _execute(self, stmt: Select) -> FeatureCollection:
        async with self.pool.connect() as conn:
            result = await conn.execute(stmt)
            return adapt_feature_collection(result)


def get_query_service(
    request: Request,
    pool: ConnectionPool = Depends(get_pool),
) -> DropoffQueryService:
    """FastAPI dependency — a service bound to the startup pool."""
    return DropoffQueryService(pool, request.app.state.settings)
