import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from yigyaps import __version__
from yigyaps.api import api_router, well_known_router
from yigyaps.config import settings
from yigyaps.errors import install_error_handling
from yigyaps.log_buffer import log_handler

# ── Logging setup ────────────────────────────────────────────────────────────
# Every module's records land in the ring buffer behind /v1/admin/logs.

_fmt = logging.Formatter("%(levelname)s %(name)s: %(message)s")
log_handler.setFormatter(_fmt)
logging.root.addHandler(log_handler)
logging.root.setLevel(settings.log_level.upper())
for _name in ("httpcore", "httpx", "multipart", "sqlalchemy.engine"):
    logging.getLogger(_name).setLevel(logging.WARNING)

app = FastAPI(
    title=settings.app_name,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_error_handling(app)

app.include_router(well_known_router)  # /.well-known/mcp.json
app.include_router(api_router)


def run() -> None:
    uvicorn.run("yigyaps.main:app", host="0.0.0.0", port=8000, log_level=settings.log_level.lower())
