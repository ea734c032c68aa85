import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from edupay.api.v1.auth.router import router as auth_router
from edupay.api.v1.fee_structures.router import router as fee_structures_router
from edupay.api.v1.insights.router import router as insights_router
from edupay.api.v1.payments.router import router as payments_router
from edupay.api.v1.reports.router import router as reports_router
from edupay.api.v1.sessions.router import router as sessions_router
from edupay.api.v1.students.router import router as students_router
from edupay.api.v1.users.router import router as users_router
from edupay.auth import models as auth_models  # noqa: F401  registers the users table
from edupay.core import models as ledger_models  # noqa: F401  registers the ledger tables
from edupay.core.config import settings
from edupay.core.logging import configure_logging
from edupay.core.store import LedgerStore
from edupay.db.persistence import SqlLedgerPersistence
from edupay.db.seed import seed_demo_data
from edupay.db.session import AsyncSessionLocal, Base, engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests install their own ledger before startup
    if getattr(app.state, "ledger", None) is None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        if settings.seed_demo_data and await seed_demo_data(AsyncSessionLocal):
            logger.info("Demo data seeded")
        ledger = LedgerStore(SqlLedgerPersistence(AsyncSessionLocal))
        await ledger.hydrate()
        app.state.ledger = ledger
    yield
    if app.state.ledger.pending_writes:
        logger.warning("Shutting down with %d unsaved ledger writes", app.state.ledger.pending_writes)
    await engine.dispose()


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="EduPay Fee Ledger", lifespan=lifespan)

    # CORS: allow the front office UI to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(sessions_router)
    app.include_router(fee_structures_router)
    app.include_router(students_router)
    app.include_router(payments_router)
    app.include_router(reports_router)
    app.include_router(insights_router)

    return app


app = create_app()
