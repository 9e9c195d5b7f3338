from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from bidflow.core.config import settings
from bidflow.core.logging import configure_logging
from bidflow.db.session import Base, engine
from bidflow.api import auth, cases, bids, notifications
from bidflow.utils.bid_state import BidWorkflowError, ErrorCode
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import logging

configure_logging()
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

# Initialize rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)

ERROR_STATUS_CODES = {
    ErrorCode.INVALID_STATE_TRANSITION: 409,
    ErrorCode.INVALID_AMOUNT: 400,
    ErrorCode.CASE_NOT_ELIGIBLE: 400,
    ErrorCode.NOT_AUTHORIZED: 403,
    ErrorCode.NOT_FOUND: 404,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} API...")
    yield
    logger.info(f"Shutting down {settings.PROJECT_NAME} API...")


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    lifespan=lifespan
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(BidWorkflowError)
async def bid_workflow_error_handler(request: Request, exc: BidWorkflowError):
    status_code = ERROR_STATUS_CODES.get(exc.code, 400)
    logger.info(f"{request.method} {request.url.path} refused with {exc.code}: {exc.reason}")
    return JSONResponse(status_code=status_code, content={"detail": exc.reason, "code": exc.code})


# Include routers
app.include_router(auth.router)
app.include_router(cases.router)
app.include_router(bids.router)
app.include_router(notifications.router)

@app.get("/")
@limiter.limit("60/minute")
def root(request: Request):
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

@app.get("/health")
@limiter.limit("200/minute")  # Allow more for monitoring
def health_check(request: Request):
    """Health check endpoint with database status."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {str(e)}")
        database = "unavailable"
    return {
        "status": "healthy" if database == "ok" else "degraded",
        "database": database
    }
