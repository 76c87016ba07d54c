# backend/app.py
import logging
import sys
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from config import Settings, load_settings
from listing import ListingEngine
from listing_routes import router as listing_router
from metadata_store import MetadataStore

APP_TITLE = "Static Tree Browser"

logger = logging.getLogger("app")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.getLogger().setLevel(settings.log_level)

    app = FastAPI(title=APP_TITLE)
    app.state.settings = settings
    app.state.listing = ListingEngine(
        settings.root,
        MetadataStore(settings.root, settings.meta_filename, strict=settings.strict),
        reserved_root_names=settings.reserved_root_names,
        strict=settings.strict,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(dict.fromkeys((settings.frontend_origin, *settings.cors_origins))),
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # ---- Basic routes ---------------------------------------------------------
    @app.get("/health")
    def health():
        return JSONResponse({
            "ok": True,
            "service": APP_TITLE,
            "root": str(settings.root),
            "metadata_policy": settings.metadata_policy,
        })

    # ---- Listing API (before the static catch-all) ----------------------------
    app.include_router(listing_router, prefix="/_api")

    # ---- Static site ----------------------------------------------------------
    if settings.root.is_dir():
        app.mount("/", StaticFiles(directory=settings.root, html=True), name="site")
    else:
        logger.error(f"[APP] Missing tree root: {settings.root}")

    return app


app = create_app()


def main():
    import uvicorn

    settings = app.state.settings
    if not settings.root.is_dir():
        logger.error(f"[APP] Missing tree root: {settings.root}")
        sys.exit(1)

    logger.info(f"[APP] UI:  http://{settings.host}:{settings.port}/")
    logger.info(f"[APP] API: http://{settings.host}:{settings.port}/_api/list")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
