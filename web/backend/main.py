from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from webwave.core.config import load_config

app = FastAPI(title="WebWave Web API", version="1.0.0")

# CORS: ALLOWED_ORIGINS (env) overrides [web].allowed_origins
allowed_origins = load_config().web.allowed_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Errors are returned as ``{"error": message}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Include routers
from web.backend.routers import account, songs, youtube

app.include_router(account.router, prefix="/api", tags=["account"])
app.include_router(youtube.router, prefix="/api", tags=["youtube"])
app.include_router(songs.router, prefix="/api", tags=["songs"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
