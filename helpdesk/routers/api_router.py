from fastapi import APIRouter
from helpdesk.routers import auth, tickets, knowledge, users

# Routers are aggregated here; main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(tickets.router, tags=["Tickets"])
api_router.include_router(knowledge.router, tags=["Knowledge Base"])
api_router.include_router(users.router, tags=["Users"])
