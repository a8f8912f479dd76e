# aitable/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aitable import config
from aitable.routes import router as api_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="AI Data Table")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "Upload a file to /api/upload to extract a table."}
