import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from edudesk.core.config import settings
from edudesk.core.errors import register_error_handlers
from edudesk.routers import agent_university, auth, brochures, users

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="EduDesk Back-Office API")

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(brochures.router)
app.include_router(agent_university.router)

# Stored brochure files, addressed by their file_url
app.mount("/uploads", StaticFiles(directory=settings.upload_root, check_dir=False), name="uploads")


@app.get("/")
async def root():
    return {
        "message": "Welcome to the EduDesk Back-Office API",
        "endpoints": {
            "users": "/users",
            "brochures": "/brochures",
            "agent-university": "/agent-university"
        }
    }
