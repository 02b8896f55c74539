import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database import init_db
from errors import EngineError
from logging_config import setup_logging
from routers import auth, documents, exceptions, projects, reference

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    yield


app = FastAPI(title="CoC Compliance", description="Certificate of Currency verification and compliance tracking",
              lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, error: EngineError):
    # Raised from dependencies, outside the routers' own handling
    logger.warning("%s on %s: %s", error.code, request.url.path, error.message)
    return JSONResponse(status_code=error.status_code,
                        content={"detail": {"code": error.code, "message": error.message}})


@app.get("/")
def read_root():
    return {"status": "online", "message": "CoC Compliance API"}


app.include_router(auth.router)
app.include_router(projects.router)
app.include_router(documents.router)
app.include_router(exceptions.router)
app.include_router(reference.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8081)
