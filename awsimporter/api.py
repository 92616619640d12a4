"""FastAPI application serving reconciliation passes over HTTP."""

import logging
import threading
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI
from pydantic import BaseModel

from . import __version__
from .config import load_settings
from .engine import ReconciliationEngine
from .gateway import TagIndexGateway, new_tagging_client

logger = logging.getLogger(__name__)


# Pydantic models, mirroring the JSON form of RunFunctionRequest/Response
class RunFunctionRequest(BaseModel):
    meta: Optional[Dict[str, Any]] = None
    observed: Optional[Dict[str, Any]] = None
    desired: Optional[Dict[str, Any]] = None
    input: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None


class ResultModel(BaseModel):
    severity: str
    message: str


class RunFunctionResponse(BaseModel):
    meta: Dict[str, Any]
    desired: Optional[Dict[str, Any]] = None
    results: List[ResultModel] = []
    context: Optional[Dict[str, Any]] = None


_engine: Optional[ReconciliationEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> ReconciliationEngine:
    """Engine shared by all requests, built on first use from the environment."""
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                settings = load_settings()
                _engine = ReconciliationEngine(
                    TagIndexGateway(new_tagging_client(settings), identity_tag=settings.external_name_tag),
                    settings,
                )
    return _engine


app = FastAPI(
    title="awsimporter",
    description="Adopts pre-existing AWS resources into compositions by their tags",
    version=__version__,
)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "awsimporter is running", "version": __version__}


@app.post("/run-function", response_model=RunFunctionResponse, response_model_exclude_unset=True)
def run_function(request: RunFunctionRequest, engine: ReconciliationEngine = Depends(get_engine)):
    """Run one reconciliation pass."""
    req = {k: v for k, v in request.model_dump().items() if v is not None}
    result = engine.run_function(req)
    logger.info(f"Pass finished: {result.outcome.value}")
    return result.response.to_dict()
