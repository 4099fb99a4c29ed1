from fastapi import APIRouter
from dbadmin.api.endpoints import auth, users, stats, database

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(stats.router)
api_router.include_router(database.router)
