from fastapi import FastAPI
from app.api.routes import timetable
from app.core.logging import setup_logging

setup_logging()

app = FastAPI(title="Timetable Generator API", version="0.1.0")

app.include_router(timetable.router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "ok"}
