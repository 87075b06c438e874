from contextlib import asynccontextmanager
from fastapi import FastAPI
from aisentinel.db.init_db import init_db
from aisentinel.routers import auth, companies


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield

app = FastAPI(
    title="AI Sentinel Session Service",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(auth.router)
app.include_router(companies.router)


@app.get("/api/health")
def health():
    return {"status": "ok"}
