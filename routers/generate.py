"""
Generation Router — /generate

POST /generate — template + responses -> generated review document
"""

import logging

from fastapi import APIRouter, Depends

from generation.pipeline import GenerationPipeline
from generation.schemas import GenerationRequest, GenerationResult
from routers.dependencies import get_pipeline

router = APIRouter(prefix="/generate", tags=["generation"])

log = logging.getLogger("routers.generate")


@router.post("", response_model=GenerationResult)
async def generate_document(
    request: GenerationRequest,
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    """
    Generate a report from a template's current (or requested) version.

    400 when responses are missing or empty, 404 for an unknown template or
    version, 502/503/504 for classified model failures.
    """
    log.info(
        f"Generate request received: template={request.template_id}, "
        f"responses={len(request.responses or {})}"
    )
    return await pipeline.generate(
        request.template_id,
        request.responses,
        version=request.version,
    )
