import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campday.database import init_db
from campday.routes import camp_setup, days, rebuild, templates

logger = logging.getLogger(__name__)

app = FastAPI(title="Camp Day Rebuilder API")


# Get build info
def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(templates.router, prefix="/api", tags=["templates"])
app.include_router(camp_setup.router, prefix="/api", tags=["camp-setup"])
app.include_router(days.router, prefix="/api", tags=["days"])
app.include_router(rebuild.router, prefix="/api", tags=["rebuild"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Camp Day Rebuilder API started (build %s)", BUILD_HASH)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": "Camp Day Rebuilder API", "build_hash": BUILD_HASH, "status": "healthy"}
