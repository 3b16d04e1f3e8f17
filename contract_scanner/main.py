from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from contract_scanner import __version__
from contract_scanner.api import analysis, prompts
from contract_scanner.core.config import settings

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="AI contract risk analysis with managed system prompts",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for now
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(analysis.router, prefix="/api/analysis", tags=["analysis"])
app.include_router(prompts.router, prefix="/api/prompts", tags=["prompts"])

@app.get("/", tags=["root"])
async def read_root():
    """Root endpoint providing API information."""
    return {
        "app": settings.APP_NAME,
        "description": "AI contract risk analysis with managed system prompts",
        "version": __version__,
        "status": "operational"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("contract_scanner.main:app", host="0.0.0.0", port=8000, reload=True)
