from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from blogapi.core.config import settings
from blogapi.core.error_handlers import register_error_handlers
from blogapi.database.engine import create_db_and_tables
from blogapi.routers import posts, categories, tags, users

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting application ({settings.ENVIRONMENT})...")

    if settings.AUTO_CREATE_TABLES:
        create_db_and_tables()
        logger.info("✓ Database tables ready")

    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    title="Blog Platform API",
    description="Posts, categories and tags for the blog platform",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,  # Frontend URL from settings
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(posts.router)       # Posts: /posts/* (listing, search, mutations)
app.include_router(categories.router)  # Categories: /categories/*
app.include_router(tags.router)        # Tags: /tags/*
app.include_router(users.router)       # Users: /users/* (profiles)


@app.get("/")
def read_root():
    return {
        "message": "Welcome to the Blog Platform API",
        "version": "1.0.0",
        "modules": {
            "posts": "/posts/* (posts with categories, filtering and search)",
            "categories": "/categories/* (category hierarchy)",
            "tags": "/tags/* (tagging)",
            "users": "/users/* (author profiles)"
        },
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


def run():
    """Serve the API with uvicorn; host and port come from settings."""
    import uvicorn

    uvicorn.run(
        "blogapi.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=not settings.is_production,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
