from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import WhanauError
from .middleware import AuthMiddleware
from .routes import auth as auth_routes
from .routes import links, relationship, requests, tree

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title="Whanau API", version="0.1.0")
app.add_middleware(AuthMiddleware)

app.include_router(auth_routes.router)
app.include_router(relationship.router)
app.include_router(tree.router)
app.include_router(links.router)
app.include_router(requests.router)


@app.exception_handler(WhanauError)
async def _whanau_error(request: Request, exc: WhanauError) -> JSONResponse:
    log.debug("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse({"error": exc.message, "code": exc.code}, status_code=exc.status_code)


@app.get("/health")
def health() -> dict[str, str]:
    return {"ok": "true"}
