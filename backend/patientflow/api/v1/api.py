"""API v1 router configuration."""

from fastapi import APIRouter

from patientflow.api.v1.endpoints import billing, health, patients, workflow

# Create API v1 router
api_router = APIRouter()

api_router.include_router(patients.router, tags=["Patients"])
api_router.include_router(billing.router, tags=["Billing"])
api_router.include_router(workflow.router, tags=["Workflow"])
api_router.include_router(health.router)
