from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

import logging
import time

from config import Config
from db import ROOT_DIR, init_db
from lending import LendingError
from routers import ALL_ROUTERS

# -----------------------
# Logging
# -----------------------
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("app")

app = FastAPI(title=Config.APP_TITLE)
templates = Jinja2Templates(directory=str(ROOT_DIR / "templates"))
templates.env.globals["app_title"] = Config.APP_TITLE
app.state.templates = templates

init_db()

for router in ALL_ROUTERS:
    app.include_router(router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed_ms = int((time.time() - start) * 1000)
    logger.info(
        "method=%s path=%s status=%s elapsed_ms=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(LendingError)
async def lending_error_handler(request: Request, exc: LendingError):
    logger.info("lending rejected path=%s status=%s reason=%s", request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
def root():
    return {"message": Config.APP_TITLE, "docs": "/docs", "ui": "/ui"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000)
