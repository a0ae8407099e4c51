"""
Plant Health configuration - central settings read from the environment.

Override with environment variables:
    PLANT_HEALTH_DATABASE_URL        - postgres://... for Postgres, empty for SQLite
    PLANT_HEALTH_SQLITE_PATH         - SQLite file (default: ./plant_health.db)
    PLANT_HEALTH_MODEL               - Vision model id (gemini-* or claude-*)
    PLANT_HEALTH_INFERENCE_TIMEOUT   - Seconds before an analysis is failed
    PLANT_HEALTH_MAX_OUTPUT_TOKENS   - Output token cap for the model call
    PLANT_HEALTH_HOST / _PORT        - API bind address
    GEMINI_API_KEY                   - Required for gemini-* models
    ANTHROPIC_API_KEY                - Required for claude-* models
"""
import os
from pathlib import Path

# ── Storage ────────────────────────────────────────────────────
DATABASE_URL = os.environ.get("PLANT_HEALTH_DATABASE_URL", "")
SQLITE_PATH = Path(
    os.environ.get("PLANT_HEALTH_SQLITE_PATH", str(Path.cwd() / "plant_health.db"))
)

# Keys of the three persisted blobs
USERS_KEY = "plant_health_users"
CURRENT_USER_KEY = "plant_health_currentUser"
ANALYSES_KEY = "plant_health_analyses"

# ── Seeded administrator ───────────────────────────────────────
ADMIN_ID = "admin-001"
ADMIN_EMAIL = "admin@plant.health"
ADMIN_PASSWORD = "admin123"

# ── Inference ──────────────────────────────────────────────────
DEFAULT_MODEL = os.environ.get("PLANT_HEALTH_MODEL", "gemini-2.5-flash")
INFERENCE_TIMEOUT = float(os.environ.get("PLANT_HEALTH_INFERENCE_TIMEOUT", "120"))
MAX_OUTPUT_TOKENS = int(os.environ.get("PLANT_HEALTH_MAX_OUTPUT_TOKENS", "4096"))

# ── API ────────────────────────────────────────────────────────
API_HOST = os.environ.get("PLANT_HEALTH_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("PLANT_HEALTH_PORT", "8001"))
