from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from bank_admin.config import settings
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from bank_admin.api import auth, users, transactions
from bank_admin.api.route_gate import RouteGateMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting Bank Admin back-office")
    logger.info("Bank API: %s", settings.BANK_API_BASE_URL)
    logger.info(
        "Transaction taxonomy: %s, non-admin login policy: %s",
        settings.TRANSACTION_TAXONOMY,
        settings.NON_ADMIN_LOGIN_POLICY,
    )

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title="Bank Admin Back-Office",
    description="Admin dashboard for managing bank users and their transactions",
    version="1.0.0",
    lifespan=lifespan
)

# Security: Add rate limiter to app state and register exception handler
app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Added first so CORS wraps it and answers preflights before the gate
app.add_middleware(RouteGateMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router)

app.include_router(api_router)
app.include_router(auth.login_view_router)
app.include_router(users.router)
app.include_router(transactions.router)

# Initialize Prometheus metrics instrumentation
Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    return {
        "message": "Bank Admin Back-Office",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bank_admin.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True
    )
