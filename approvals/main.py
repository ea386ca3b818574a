import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from approvals.routes import router
from approvals.database import Base, UsersBase, engine, users_engine
from approvals.settings import configure_logging, settings
import approvals.models  # noqa: F401  registers tables on both bases

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Payment Approvals Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(router)

Base.metadata.create_all(bind=engine)
UsersBase.metadata.create_all(bind=users_engine)
logger.info("Approvals service initialised")


@app.get("/health")
def health():
    return {"status": "ok"}
