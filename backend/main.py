from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import time

from config import Config
from routes import chat_router, messages_router
from models.llm_models import MODELS, DEFAULT_MODEL_ID
from utils.logger import configure_logging, get_logger
from utils.tracing import setup_tracing

# Configure logging for the entire application
configure_logging()
logger = get_logger(__name__)

# Import tool definitions to register all tools
from modules.tools import definitions  # noqa: F401 - imported for side effects (tool registration)

app = FastAPI(
    title="Fincasts Financial Chat API",
    description="Chat with an agent that answers questions about public companies using live financial data",
    version="1.0.0"
)

# Setup OpenTelemetry tracing (auto-instruments FastAPI and outbound HTTP)
setup_tracing(app)

# Add simple timing middleware for request duration logging
@app.middleware("http")
async def log_requests(request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = (time.time() - start_time) * 1000

    logger.info(
        f"{request.method} {request.url.path} - {response.status_code} ({duration:.0f}ms)",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(duration, 2),
            "type": "http_request"
        }
    )
    return response

logger.info("Fincasts API initialized")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat_router)
app.include_router(messages_router)


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    if Config.AUTO_CREATE_TABLES:
        from database import init_db
        await init_db()
        logger.info("Database tables ready")


@app.on_event("shutdown")
async def shutdown_event():
    """Let running turns finish their cleanup before exiting"""
    from modules.chat_service import get_chat_service
    await get_chat_service().wait_idle()


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Fincasts Financial Chat API", "status": "running"}


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.get("/models")
async def list_models():
    """Chat models a client may select"""
    return {
        "default_model_id": DEFAULT_MODEL_ID,
        "models": [model.model_dump() for model in MODELS]
    }


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Fincasts API starting on {Config.API_HOST}:{Config.API_PORT}")
    logger.info(f"API Documentation: http://localhost:{Config.API_PORT}/docs")
    uvicorn.run(
        app,
        host=Config.API_HOST,
        port=Config.API_PORT,
        timeout_keep_alive=5,
        log_level="info"
    )
