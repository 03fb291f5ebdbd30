from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from endpoints import auth, product, company
from dataBase import Database
from utils.response import create_response
from utils.security import warn_on_default_secrets
import config
import logging


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI()

# Connection pool handle; opened on startup, closed on shutdown
app.state.database = Database(config.DATABASE_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Report missing or malformed fields as 400 with the list of offending fields.
    """
    fields = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())[1:]]
        field = ".".join(location) or str(error.get("loc", ("",))[0])
        if field not in fields:
            fields.append(field)
    return create_response("error", "Missing or invalid fields", {"fields": fields}, status_code=400)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("message", "Error")
        data = {key: value for key, value in detail.items() if key != "message"}
    else:
        message = str(detail)
        data = None
    return create_response("error", message, data, status_code=exc.status_code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return create_response("error", "Internal Server Error", status_code=500)


app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])

app.include_router(product.router, prefix="/api/products", tags=["Products"])

app.include_router(company.router, prefix="/api/companies", tags=["Companies"])


@app.get("/")
def read_root():
    """
    Root route returning a welcome message.
    """
    return {"message": "Welcome to the catalog API!"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
def startup_event():
    warn_on_default_secrets()
    database = app.state.database
    database.connect()
    database.create_tables()
    logger.info("Database ready")


@app.on_event("shutdown")
def shutdown_event():
    app.state.database.dispose()
