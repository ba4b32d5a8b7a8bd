# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

# Local imports
from config import settings
from database import create_tables, AsyncSessionLocal
from crud.user import seed_roles_and_admin
from services.fuel_sync import register_jobs

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Airport Fuel Management Backend - JWT + RBAC")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Report-Warnings", "Content-Disposition"],
)

from routers import auth as auth_routes
app.include_router(auth_routes.router)

from routers import users, companies, locations, vehicles
app.include_router(users.router)
app.include_router(companies.router)
app.include_router(locations.router)
app.include_router(vehicles.router)

from routers import airlines, fuel_price_rules
app.include_router(airlines.router)
app.include_router(fuel_price_rules.router)

from routers import fixed_tanks, fixed_tank_transfers, intake_records, tankers, fueling_operations, drains
app.include_router(fixed_tanks.router)
app.include_router(fixed_tank_transfers.router)
app.include_router(intake_records.router)
app.include_router(tankers.router)
app.include_router(fueling_operations.router)
app.include_router(drains.router)

from routers import fuel_consistency, reports, activities
app.include_router(fuel_consistency.router)
app.include_router(reports.router)
app.include_router(activities.router)


scheduler = AsyncIOScheduler()


@app.get("/")
def read_root():
    return {"message": "Fuel management API (JWT) running successfully!"}


@app.on_event("startup")
async def on_startup():
    logger.info("Initializing database...")
    await create_tables()

    async with AsyncSessionLocal() as db:
        await seed_roles_and_admin(db)

    if settings.SCHEDULER_ENABLED:
        register_jobs(scheduler)
        scheduler.start()
        logger.info("Scheduler started")

    logger.info("Startup initialization complete.")


@app.on_event("shutdown")
async def on_shutdown():
    if scheduler.running:
        scheduler.shutdown(wait=False)
