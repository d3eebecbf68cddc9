"""
API v1 Routes
Progetto: Gestionale Impianti TVCC

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from app.api.v1 import customers, job_items, jobs

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(jobs.router)
api_v1_router.include_router(job_items.router)
api_v1_router.include_router(customers.router)

# Esportazione
__all__ = ["api_v1_router"]
