## Main application entry point

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.settings import settings
from app.log import get_logger, setup_logging
from app.auth.deps import NotAuthenticated
from app.errors import InvalidInput, PipelineError
from app.articles.routes import router as articles_router
from app.chat.routes import router as chat_router
from app.portfolios.routes import router as portfolios_router
from app.posts.routes import router as posts_router

setup_logging()
logger = get_logger(__name__)

app = FastAPI(title=settings.APP_TITLE)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.ALLOWED_ORIGIN.split(",")],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    if exc.status_code >= 500:
        logger.error("%s failed at %s: %s", request.url.path, exc.stage, exc.message)
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(e.get("type") == "missing" and tuple(e.get("loc", ())) == ("body",) for e in errors):
        return await pipeline_error_handler(request, InvalidInput("Missing JSON body."))

    first = errors[0] if errors else {}
    path = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid field '{path}': {first.get('msg')}" if path else "Invalid JSON body."
    return await pipeline_error_handler(request, InvalidInput(message))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"success": False, "error": exc.detail, "stage": "input"},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(NotAuthenticated)
async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
    return JSONResponse({"success": False, "error": exc.message, "stage": "auth"}, status_code=401)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        {"success": False, "error": "Unexpected server error.", "stage": "internal"},
        status_code=500,
    )


app.include_router(articles_router)
app.include_router(portfolios_router)
app.include_router(posts_router)
app.include_router(chat_router)
