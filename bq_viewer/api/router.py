from fastapi import APIRouter
from bq_viewer.api.endpoints import bigquery

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(bigquery.router)
