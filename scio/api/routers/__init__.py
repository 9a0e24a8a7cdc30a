"""Aggregate API routers."""

from fastapi import APIRouter

from .identity import router as identity_router
from .leaderboard import router as leaderboard_router
from .matches import router as matches_router
from .matchmaking import router as matchmaking_router
from .rounds import router as rounds_router
from .system import router as system_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    identity_router,
    matchmaking_router,
    matches_router,
    rounds_router,
    leaderboard_router,
)

__all__ = ["ALL_ROUTERS"]
