from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..dependencies import GraphQueryParams, get_pipeline
from ..errors import GraphException
from ..services.pipeline import GraphPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/graphs", tags=["graphs"])


@router.get("")
async def render_graph(
    params: GraphQueryParams = Depends(GraphQueryParams),
    pipeline: GraphPipeline = Depends(get_pipeline),
) -> Response:
    try:
        request = params()
        payload = pipeline.render_cached(request)
    except GraphException as exc:
        logger.info("Graph request rejected (%s): %s", type(exc).__name__, exc)
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    seconds = pipeline.ttl_for(request)
    cache_control = f"max-age={seconds}" if seconds else "no-cache"
    return Response(content=payload, media_type="application/json", headers={"Cache-Control": cache_control})


@router.get("/types", response_model=list[str])
async def graph_types(pipeline: GraphPipeline = Depends(get_pipeline)) -> list[str]:
    return pipeline.registry.graph_types()
