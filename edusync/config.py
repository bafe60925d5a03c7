"""
EduSync Configuration
Database, auth and grading settings
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("EDUSYNC_DB_NAME", "edusync_db")

# Auth (shared HS256 secret with the identity service)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Grading policy: minimum percentage counted as "Passed"
PASS_THRESHOLD = int(os.getenv("EDUSYNC_PASS_THRESHOLD", "50"))

# Progress refresh settings
REFRESH_DEBOUNCE_SECONDS = float(os.getenv("EDUSYNC_REFRESH_DEBOUNCE_SECONDS", "0.3"))
POLL_INTERVAL_SECONDS = float(os.getenv("EDUSYNC_POLL_INTERVAL_SECONDS", "5"))

# Analytics
RECENT_ENROLLMENTS_LIMIT = int(os.getenv("EDUSYNC_RECENT_ENROLLMENTS", "5"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "1") not in ("0", "false", "False")
