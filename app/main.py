from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.errors import FounderMatchError, InvalidRequest
from app.llm import close_model_client
from app.redis_client import close_pool, ping
from app.routes.entities_api import router as entities_router
from app.routes.inbox_api import router as inbox_router
from app.routes.match_api import router as match_router
from app.routes.onboarding_api import router as onboarding_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_model_client()
    await close_pool()


app = FastAPI(title="FounderMatch", lifespan=lifespan)

app.include_router(match_router)
app.include_router(onboarding_router)
app.include_router(entities_router)
app.include_router(inbox_router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "redis": await ping()}


@app.exception_handler(FounderMatchError)
async def domain_error(request: Request, exc: FounderMatchError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError):
    error = InvalidRequest("Invalid request body")
    return JSONResponse(
        {"error": error.message, "details": jsonable_encoder(exc.errors())},
        status_code=error.status_code,
    )
