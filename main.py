"""
App Source API Server Entry Point v1.0.0

Use this file for deployment:
  uvicorn main:app --host 0.0.0.0 --port $PORT
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from appsource import __version__, config
from appsource.catalog.admin import router as catalog_admin_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

# ============================================
# App Configuration
# ============================================
app = FastAPI(
    title="App Source API",
    description="Catalog item synthesis and artifact verification",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(catalog_admin_router)


@app.get("/")
def root():
    return {
        "service": "App Source API",
        "version": __version__,
        "status": "operational",
    }


@app.get("/health")
def health():
    return {"status": "healthy", "version": __version__}


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
