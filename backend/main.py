"""
EventFlow Backend API

FastAPI application serving the EventFlow GraphQL API over HTTP and
WebSocket (subscriptions), backed by MongoDB.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from strawberry.subscriptions import GRAPHQL_TRANSPORT_WS_PROTOCOL, GRAPHQL_WS_PROTOCOL

from backend.graphql import schema
from backend.graphql.context import EventFlowGraphQLRouter, get_context
from eventflow import __version__
from eventflow.core.config import get_config
from eventflow.core.mongo_manager import close_mongo_manager, get_mongo_manager
from eventflow.core.pubsub import PubSub
from eventflow.utils.logger import get_logger, setup_logger

config = get_config()
setup_logger("", log_level=config.log_level, log_file=config.log_file)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle handler for startup and shutdown"""
    # Startup
    logger.info("🚀 Starting EventFlow API...")

    app.state.config = config

    logger.info("🍃 Connecting to MongoDB...")
    mongo_manager = get_mongo_manager(config.mongodb)
    mongo_manager.connect_async()
    if config.mongodb.get('auto_create_indexes', True):
        await mongo_manager.create_indexes_async()
    app.state.mongo_manager = mongo_manager

    app.state.pubsub = PubSub()

    logger.info(f"✅ API startup complete ({config.app_env})")

    yield

    # Shutdown
    logger.info("🔒 Shutting down EventFlow API...")
    close_mongo_manager()
    logger.info("✅ API shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="EventFlow API",
    description="Event management GraphQL API",
    version=__version__,
    lifespan=lifespan
)


# CORS Middleware
cors_config = config.api.get('cors', {})

if cors_config.get('enabled', True):
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=cors_config.get('allow_credentials', True),
        allow_methods=cors_config.get('allow_methods', ["*"]),
        allow_headers=cors_config.get('allow_headers', ["*"]),
    )


# Root endpoint
@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "name": "EventFlow API",
        "version": __version__,
        "status": "running",
        "graphql": "/graphql",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        mongo_manager = app.state.mongo_manager
        await mongo_manager.ping()

        return {
            "status": "healthy",
            "database": "connected",
            "database_name": mongo_manager.database_name,
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


graphql_app = EventFlowGraphQLRouter(
    schema,
    context_getter=get_context,
    subscription_protocols=[GRAPHQL_TRANSPORT_WS_PROTOCOL, GRAPHQL_WS_PROTOCOL],
)
app.include_router(graphql_app, prefix="/graphql")


# Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Custom HTTP exception handler"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """General exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "status_code": 500
        }
    )


if __name__ == "__main__":
    import uvicorn

    api_config = config.api
    host = api_config.get('host', '0.0.0.0')
    port = int(api_config.get('port', 4000))
    reload = api_config.get('reload', False)
    workers = int(api_config.get('workers', 1))

    logger.info(f"🚀 Starting API server on {host}:{port}")

    uvicorn.run(
        "backend.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1 if reload else workers,
        log_level="info"
    )
