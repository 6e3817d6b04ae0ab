from fastapi import APIRouter

from staffhub.api.v1.endpoints import chat, notifications, teams, ws_chat

api_router = APIRouter()

api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(teams.router, prefix="/teams", tags=["teams"])

# Mounted at the application root (see staffhub.main), not under API_V1_STR
websocket_router = APIRouter()
websocket_router.include_router(ws_chat.router, tags=["WebSockets"])
