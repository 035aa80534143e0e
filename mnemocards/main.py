import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mnemocards.config import get_settings
from mnemocards.database import Base, engine
from mnemocards.users.routes import router as users_router
from mnemocards.cards.routes import router as cards_router
from mnemocards.study.routes import router as learn_router
from mnemocards.generation.routes import router as generation_router

# Import models so SQLAlchemy can create tables
from mnemocards.users.models import User  # noqa: F401
from mnemocards.cards.models import Card, CardAnchor, CardBinding, ReviewRecord  # noqa: F401

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Tables for every imported model
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="Mnemocards API",
    description="Create mnemonic vocabulary flashcards with AI and review them with spaced repetition",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(users_router)
app.include_router(generation_router)
app.include_router(cards_router)
app.include_router(learn_router)


@app.get("/")
async def root():
    return {"message": "Mnemocards API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
