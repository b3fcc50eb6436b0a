"""FastAPI dependencies shared by the route modules."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from sarthi.factory import build_coordinator
from sarthi.pipeline.coordinator import PipelineCoordinator

logger = logging.getLogger(__name__)


@lru_cache
def get_coordinator() -> PipelineCoordinator:
    """Process-wide coordinator built from settings on first use."""
    logger.info("Building conversation pipeline")
    return build_coordinator()


Coordinator = Annotated[PipelineCoordinator, Depends(get_coordinator)]
