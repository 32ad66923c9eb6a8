from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from .database import engine, Base
from .routers import ai, auth, leads, pdf, quotes, settings

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("renoquote")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="RenoQuote",
    description="Lead funnel, AI visualizer and quote builder for Red White Reno",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(auth.router, prefix="/api")
app.include_router(leads.router, prefix="/api")
app.include_router(quotes.router, prefix="/api")
app.include_router(pdf.router, prefix="/api")
app.include_router(settings.router, prefix="/api")
app.include_router(ai.router, prefix="/api")

# Serve stored visualizer images (local fallback when R2 not configured)
uploads_path = os.path.join(os.getcwd(), "uploads")
if os.path.exists(uploads_path):
    app.mount("/uploads", StaticFiles(directory=uploads_path), name="uploads")
    logger.info("Serving local uploads from %s", uploads_path)


@app.get("/health")
def health():
    return {"status": "ok", "app": "renoquote"}
