from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schoolledger.api.v1.audit.router import router as audit_router
from schoolledger.api.v1.fee_records.router import router as fee_records_router
from schoolledger.api.v1.promotions import scheduler as promotion_scheduler
from schoolledger.api.v1.promotions.router import router as promotions_router
from schoolledger.api.v1.students.router import router as students_router
from schoolledger.core.config import settings
from schoolledger.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="School Ledger")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(students_router)
    app.include_router(fee_records_router)
    app.include_router(promotions_router)
    app.include_router(audit_router)

    if settings.promotion_scheduler_enabled:

        @app.on_event("startup")
        async def start_promotion_scheduler() -> None:
            promotion_scheduler.start_scheduler()

        @app.on_event("shutdown")
        async def stop_promotion_scheduler() -> None:
            promotion_scheduler.shutdown_scheduler()

    return app


app = create_app()
