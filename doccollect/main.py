"""Main FastAPI application."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from doccollect.config import settings
from doccollect.outreach import routes as outreach_routes

# Create FastAPI app
app = FastAPI(
    title="DocCollect API",
    description="Document collection follow-up orchestration",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(outreach_routes.router, prefix=settings.API_V1_PREFIX, tags=["Outreach"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "DocCollect API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "doccollect.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
