from fastapi import APIRouter
from peer_feedback.routers import admin, employees, feedback

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(feedback.router, tags=["Feedback"])
api_router.include_router(employees.router, tags=["Employees"])
api_router.include_router(admin.router, tags=["Administration"])
