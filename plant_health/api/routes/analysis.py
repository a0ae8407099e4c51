"""Analysis routes for the user workspace.

Endpoints:
    GET    /v1/analysis          Current pipeline state
    POST   /v1/analysis/image    Upload a leaf photo (multipart "image")
    POST   /v1/analysis/run      Analyze the selected image (blocks until done)
    DELETE /v1/analysis          Clear the selected image and result
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from plant_health.analysis.schemas import PipelineSnapshot
from plant_health.api.deps import get_context, require_principal
from plant_health.context import PlantHealthContext
from plant_health.errors import AnalysisInProgress, ImageDecodeError, PreconditionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.get("", response_model=PipelineSnapshot)
async def get_analysis(context: PlantHealthContext = Depends(get_context)):
    require_principal(context)
    return context.pipeline.snapshot()


@router.post("/image", response_model=PipelineSnapshot)
async def select_image(
    image: UploadFile = File(...),
    context: PlantHealthContext = Depends(get_context),
):
    """Select an image for analysis, discarding any previous result."""
    require_principal(context)
    data = await image.read()
    try:
        return context.pipeline.select_image(
            data,
            filename=image.filename,
            content_type=image.content_type,
        )
    except AnalysisInProgress as e:
        logger.warning(f"Image upload rejected while analyzing: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except ImageDecodeError as e:
        logger.warning(f"Image upload could not be decoded: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/run", response_model=PipelineSnapshot)
def run_analysis(context: PlantHealthContext = Depends(get_context)):
    """Run the analysis.

    Returns the final snapshot: state "succeeded" with the result, or
    "failed" with the error message. Runs in the threadpool since the
    inference call blocks.
    """
    require_principal(context)
    try:
        return context.pipeline.start_analysis()
    except AnalysisInProgress as e:
        logger.warning(f"Analysis run rejected: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except PreconditionError as e:
        logger.warning(f"Analysis run rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("", response_model=PipelineSnapshot)
async def reset_analysis(context: PlantHealthContext = Depends(get_context)):
    require_principal(context)
    try:
        return context.pipeline.reset()
    except AnalysisInProgress as e:
        logger.warning(f"Reset rejected while analyzing: {e}")
        raise HTTPException(status_code=409, detail=str(e))
