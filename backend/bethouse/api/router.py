from fastapi import APIRouter

from bethouse.api.admin import router as admin_router
from bethouse.api.badges import router as badges_router
from bethouse.api.bets import router as bets_router
from bethouse.api.events import router as events_router
from bethouse.api.leaderboard import router as leaderboard_router
from bethouse.api.money_requests import router as money_requests_router
from bethouse.api.wallet import router as wallet_router
from bethouse.api.ws import router as ws_router

api_router = APIRouter()
api_router.include_router(events_router)
api_router.include_router(wallet_router)
api_router.include_router(bets_router)
api_router.include_router(money_requests_router)
api_router.include_router(leaderboard_router)
api_router.include_router(badges_router)
api_router.include_router(admin_router)
api_router.include_router(ws_router)
