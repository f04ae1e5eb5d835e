"""
Application constants and environment configuration.
"""
import os

# ===== ENVIRONMENT =====

DATABASE_URL = os.getenv("CALORIE_REWARDS_DATABASE_URL", "sqlite:///./rewards.db")
API_KEY = os.getenv("CALORIE_REWARDS_API_KEY", "your-secret-key-change-me")

# Effective day starts at this local time (HH:MM); empty disables the shift
DAY_START_TIME = os.getenv("CALORIE_REWARDS_DAY_START", "")

DEFAULT_LOG_DIRECTORY_PROD = "/var/log/calorie-rewards"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

# Hour (0-23) of the nightly ledger audit
LEDGER_AUDIT_HOUR = int(os.getenv("CALORIE_REWARDS_AUDIT_HOUR", "3"))

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CALORIE_REWARDS_CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

# ===== TRANSACTIONS =====

TRANSACTION_TYPE_EARN = "earn"
TRANSACTION_TYPE_SPEND = "spend"

REASON_DAILY_LOGIN = "daily_login"
REASON_LEVEL_UP = "level_up"
REASON_ACHIEVEMENT = "achievement"
REASON_PURCHASE = "purchase"
REASON_FOOD_LOG = "food_log"
REASON_WEIGHT_LOG = "weight_log"

# ===== ACTIVITY TYPES =====

ACTIVITY_FOOD = "food"
ACTIVITY_WEIGHT = "weight"
ACTIVITY_TYPES = (ACTIVITY_FOOD, ACTIVITY_WEIGHT)

# ===== POINT REWARDS =====

POINT_REWARDS = {
    "DAILY_LOGIN": 100,
    "FOOD_LOG": 50,             # Base points, multiplied by food milestone level
    "WEIGHT_LOG": 150,          # Base points, multiplied by weight milestone level
    "FIRST_FOOD_LOG": 500,
    "FIRST_WEIGHT_LOG": 500,
    "MILESTONE_LEVEL_UP": 250,  # Bonus for a new level or milestone level
}

# lifetime_points needed for level 1..10
LEVEL_THRESHOLDS = [0, 1000, 2500, 5000, 10000, 20000, 35000, 55000, 80000, 110000]

# (logs, level, multiplier)
FOOD_MILESTONE_THRESHOLDS = [
    (0, 1, 1.0),
    (10, 2, 1.1),
    (25, 3, 1.2),
    (50, 4, 1.3),
    (100, 5, 1.4),
    (200, 6, 1.5),
    (350, 7, 1.6),
    (500, 8, 1.7),
    (750, 9, 1.8),
    (1000, 10, 1.9),
    (1500, 11, 2.0),
    (2000, 12, 2.1),
]

WEIGHT_MILESTONE_THRESHOLDS = [
    (0, 1, 1.0),
    (5, 2, 1.1),
    (10, 3, 1.2),
    (20, 4, 1.3),
    (35, 5, 1.4),
    (50, 6, 1.5),
    (75, 7, 1.6),
    (100, 8, 1.7),
    (150, 9, 1.8),
    (200, 10, 1.9),
    (300, 11, 2.0),
    (400, 12, 2.1),
]

# ===== SHOP =====

EXCLUSIVE_ITEM_CATEGORIES = ("theme", "avatar")

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_LEADERBOARD_LIMIT = 100
