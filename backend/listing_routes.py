# backend/listing_routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from errors import TreeViewError
from listing import ListingEngine
from models import ListingResult

logger = logging.getLogger("listing")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

router = APIRouter()


def _engine(request: Request) -> ListingEngine:
    return request.app.state.listing


@router.get("/list", response_model=ListingResult)
async def list_dir(request: Request, path: Optional[str] = Query("")):
    """
    GET /_api/list?path=docs
    Path errors are 4xx; metadata problems are 5xx.
    """
    try:
        return await _engine(request).list(path or "")
    except TreeViewError as e:
        if e.status_code >= 500:
            logger.error(f"[LIST] {e.code} for path={path!r}: {e.message}")
        else:
            logger.info(f"[LIST] {e.code} for path={path!r}: {e.message}")
        return JSONResponse(e.to_payload(), status_code=e.status_code)
