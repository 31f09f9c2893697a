"""
CodeNest Configuration
Database, auth, sandbox and gamification settings
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "codenest")

# Auth (shared secret with the auth service)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Execution sandbox (Piston)
PISTON_API_URL = os.getenv("PISTON_API_URL", "https://emkc.org/api/v2/piston")
EXECUTION_TIMEOUT_SECONDS = float(os.getenv("EXECUTION_TIMEOUT_SECONDS", "15"))
COMPILE_TIMEOUT_MS = 10000
RUN_TIMEOUT_MS = 3000

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ==================== GAMIFICATION ====================

XP_PER_LEVEL = 500
EXECUTION_XP = 10
EXECUTION_POINTS = 10
TOPIC_COMPLETION_XP = 50
SKILL_METRIC_MAX = 100
ACTIVITY_WINDOW_DAYS = 365

# Optimistic write retries on the per-user progress document
PROGRESS_UPDATE_MAX_ATTEMPTS = 3

LEADERBOARD_DEFAULT_LIMIT = 10
LEADERBOARD_MAX_LIMIT = 100
