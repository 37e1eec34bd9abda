# tradecert/api/v1/router.py
from fastapi import APIRouter
from tradecert.api.v1 import (
    auth,
    users,
    traders,
    courses,
    enrollments,
    payments,
)

api_router = APIRouter()

api_router.include_router(auth.router,        prefix="/auth",        tags=["auth"])
api_router.include_router(users.router,       prefix="/users",       tags=["users"])
api_router.include_router(traders.router,     prefix="/traders",     tags=["traders"])
api_router.include_router(courses.router,     prefix="/courses",     tags=["courses"])
api_router.include_router(enrollments.router, prefix="/enrollments", tags=["enrollments"])
api_router.include_router(payments.router,    prefix="/payments",    tags=["payments"])
