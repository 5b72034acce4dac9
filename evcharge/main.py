from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from evcharge.config import settings
from evcharge.database import init_db
from evcharge.exceptions import register_exception_handlers
from evcharge.logging_config import setup_logging
from evcharge.auth import router as auth_router
from evcharge.users import router as users_router
from evcharge.owners import router as owners_router
from evcharge.stations import router as stations_router
from evcharge.bookings import router as bookings_router
from evcharge.dashboard import router as dashboard_router

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = setup_logging()
    init_db()
    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
    yield

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Role-based console API for an EV charging network",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

register_exception_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Error"],
)

# Include routers
app.include_router(
    auth_router.router,
    prefix=f"{settings.API_PREFIX}/auth",
    tags=["Authentication"]
)

app.include_router(
    users_router.router,
    prefix=f"{settings.API_PREFIX}/users",
    tags=["Users"]
)

app.include_router(
    owners_router.router,
    prefix=f"{settings.API_PREFIX}/evowners",
    tags=["EV Owners"]
)

app.include_router(
    stations_router.router,
    prefix=f"{settings.API_PREFIX}/stations",
    tags=["Stations"]
)

app.include_router(
    bookings_router.router,
    prefix=f"{settings.API_PREFIX}/bookings",
    tags=["Bookings"]
)

app.include_router(
    dashboard_router.router,
    prefix=f"{settings.API_PREFIX}/dashboard",
    tags=["Dashboard"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": settings.PROJECT_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
