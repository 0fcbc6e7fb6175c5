"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from calorie_tracker.api.v1.endpoints import (admin, admin_database, admin_user_foods, auth,
                                              external_foods, foods, logs, rewards, users,
                                              weight)

api_router = APIRouter()

# Login, logout, verify, register
api_router.include_router(auth.router)

# Catalog and the user's own diary
api_router.include_router(foods.router)
api_router.include_router(logs.router)
api_router.include_router(users.router)
api_router.include_router(weight.router)

# Points, milestones and the leaderboard
api_router.include_router(rewards.router)

# Open Food Facts search and logging
api_router.include_router(external_foods.router)

# Role-gated administration
api_router.include_router(admin.router)
api_router.include_router(admin_user_foods.router)
api_router.include_router(admin_database.router)
