OPENAI_BASE_URL = "https://foundation-models.api.cloud.ru/v1"
OPENAI_MODEL = "openai/gpt-oss-120b"

BOT_NAME = "IQ Master"

# test_type -> (question count, button label, pinned category or None)
TEST_TYPES: dict[str, tuple[int, str, str | None]] = {
    "quick": (10, "⚡ Quick Test (10)", None),
    "standard": (25, "📝 Standard Test (25)", None),
    "full": (50, "🎓 Full Test (50)", None),
    "math": (20, "🧮 Math (20)", "mathematical reasoning"),
    "verbal": (20, "🔤 Verbal (20)", "verbal intelligence"),
    "logic": (20, "🎯 Logic (20)", "logical thinking"),
    "spatial": (20, "🧊 Spatial (20)", "spatial reasoning"),
    "random": (1, "🎲 Random Question", None),
}

CATEGORIES = [
    "mathematical reasoning",
    "pattern recognition",
    "verbal intelligence",
    "logical thinking",
    "spatial reasoning",
]

DIFFICULTIES = ("easy", "medium", "hard")
DEFAULT_DIFFICULTY = "medium"

# (min percentage, label)
PERFORMANCE_TIERS: list[tuple[int, str]] = [
    (90, "Exceptional"),
    (80, "Excellent"),
    (70, "Very Good"),
    (60, "Good"),
    (50, "Average"),
    (0, "Needs Improvement"),
]

IQ_MIN = 70
IQ_MAX = 180
LEADERBOARD_SIZE = 10

SESSION_KEY_PREFIX = "session:"
STATS_KEY_PREFIX = "stats:"
USER_KEY_PREFIX = "user:"
LEADERBOARD_KEY = "leaderboard"
