"""
FastAPI application for the flow query service.

Provides endpoints for:
- Compiling dashboard filter state into a WHERE clause
- Resolving uploaded file headers to the canonical flow schema
- Fetching dashboard panels through the configured warehouse client
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .errors import UnsafeFilterError
from .models import FilterState
from .predicate import build_where_clause, validate_custom_filter
from .queries import DashboardService, WarehouseClient
from .schema import resolve_schema, validate_mapping

logger = logging.getLogger(__name__)


# Pydantic models for API requests/responses


class TimeRangeModel(BaseModel):
    """Inclusive millisecond bounds."""
    start: Optional[int] = None
    end: Optional[int] = None


class FilterStateModel(BaseModel):
    """Dashboard filter state, in the UI's camelCase wire format."""
    timeRange: TimeRangeModel = Field(default_factory=TimeRangeModel)
    srcIps: List[str] = Field(default_factory=list)
    dstIps: List[str] = Field(default_factory=list)
    srcPorts: List[int] = Field(default_factory=list)
    dstPorts: List[int] = Field(default_factory=list)
    protocols: List[int] = Field(default_factory=list)
    l7Protocols: List[int] = Field(default_factory=list)
    attackTypes: List[str] = Field(default_factory=list)
    customFilter: Optional[str] = None
    resultCount: Optional[int] = None


class CompileResponse(BaseModel):
    """Compiled WHERE clause."""
    whereClause: str
    conditionCount: int


class ResolveRequest(BaseModel):
    """Header row of an uploaded file."""
    headers: List[str] = Field(..., description="Header row, in file order")


class MappingRequest(BaseModel):
    """Manually assigned canonical -> header mapping."""
    headers: List[str] = Field(..., description="Header row, in file order")
    mapping: Dict[str, str] = Field(..., description="Canonical column -> header")


class ResolveResponse(BaseModel):
    """Outcome of schema resolution."""
    success: bool
    mapping: Dict[str, str] = Field(default_factory=dict)
    missingColumns: List[str] = Field(default_factory=list)
    foundHeaders: List[str] = Field(default_factory=list)


class DashboardRequest(BaseModel):
    """Request for all dashboard panels."""
    filters: FilterStateModel = Field(default_factory=FilterStateModel)
    bucketMinutes: Optional[int] = Field(None, gt=0)
    limit: Optional[int] = Field(None, gt=0)
    offset: int = Field(0, ge=0)


class DashboardResponse(BaseModel):
    """All dashboard panels for one filter state."""
    success: bool
    whereClause: str
    timeline: List[Dict[str, Any]] = Field(default_factory=list)
    attacks: List[Dict[str, Any]] = Field(default_factory=list)
    topSrcIps: List[Dict[str, Any]] = Field(default_factory=list)
    topDstIps: List[Dict[str, Any]] = Field(default_factory=list)
    flows: List[Dict[str, Any]] = Field(default_factory=list)
    totalFlowCount: int = 0
    executionTimeMs: float = 0.0


def create_app(
    client: Optional[WarehouseClient] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        client: Optional warehouse client; dashboard queries return 503 without one
        settings: Optional settings (loaded from FLOW_QUERY_CONFIG otherwise)

    Returns:
        Configured FastAPI app
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="Flow Query API",
        description="Filter compilation and schema resolution for NetFlow dashboards",
        version="1.0.0"
    )

    dashboard = None
    if client is not None:
        dashboard = DashboardService(
            client,
            table=settings.table,
            top_talkers_limit=settings.top_talkers_limit,
        )

    def compile_filters(model: FilterStateModel):
        filters = FilterState.from_dict(model.model_dump())
        if settings.validate_custom and filters.custom_filter:
            try:
                validate_custom_filter(filters.custom_filter)
            except UnsafeFilterError as e:
                raise HTTPException(status_code=400, detail=str(e))
        return build_where_clause(filters)

    # API Routes

    @app.post("/api/filters/compile", response_model=CompileResponse)
    async def compile_where(request: FilterStateModel) -> CompileResponse:
        """Compile filter state into a WHERE clause.

        Raises:
            HTTPException: If the custom filter is rejected
        """
        builder = compile_filters(request)
        return CompileResponse(
            whereClause=builder.build(),
            conditionCount=builder.condition_count(),
        )

    @app.post("/api/schema/resolve", response_model=ResolveResponse)
    async def resolve_headers(request: ResolveRequest) -> ResolveResponse:
        """Detect the canonical column mapping for a header row."""
        resolution = resolve_schema(request.headers)
        return ResolveResponse(**resolution.to_dict())

    @app.post("/api/schema/validate", response_model=ResolveResponse)
    async def validate_manual_mapping(request: MappingRequest) -> ResolveResponse:
        """Check a manual header assignment against a header row."""
        resolution = validate_mapping(request.mapping, request.headers)
        return ResolveResponse(**resolution.to_dict())

    @app.post("/api/dashboard", response_model=DashboardResponse)
    def get_dashboard(request: DashboardRequest) -> DashboardResponse:
        """Fetch every dashboard panel for a filter state.

        Raises:
            HTTPException: 503 without a warehouse client, 400 on query failure
        """
        if dashboard is None:
            raise HTTPException(
                status_code=503,
                detail="No warehouse client configured"
            )

        where = compile_filters(request.filters).build()
        data = dashboard.get_dashboard(
            where=where,
            bucket_minutes=request.bucketMinutes or settings.bucket_minutes,
            limit=request.limit or settings.flow_limit,
            offset=request.offset,
        )
        if not data.success:
            raise HTTPException(status_code=400, detail=data.error)

        return DashboardResponse(
            success=True,
            whereClause=where,
            timeline=data.timeline,
            attacks=data.attacks,
            topSrcIps=data.top_src_ips,
            topDstIps=data.top_dst_ips,
            flows=data.flows,
            totalFlowCount=data.total_flow_count,
            executionTimeMs=data.execution_time_ms,
        )

    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Create the app instance
app = create_app()
