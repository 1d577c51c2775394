import os

# In a real deployment, load these from the environment or a secrets store
SECRET_KEY: str = os.getenv(
    "SECRET_KEY", "dealership-reports-secret-!ChangeMe!"
)
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite://./dealership_reports.sqlite3")

# Company to supplier replies slower than this are ignored by the ranking report
RESPONSE_WINDOW_HOURS: int = int(os.getenv("RESPONSE_WINDOW_HOURS", "168"))

REPORT_LOG_LEVEL: str = os.getenv("REPORT_LOG_LEVEL", "INFO").upper()

MODEL_MODULES = [
    "dealership_reports.features.auth.models",
    "dealership_reports.features.company.models",
    "dealership_reports.features.workshop.models",
    "dealership_reports.features.vehicles.models",
    "dealership_reports.features.notifications.models",
    "dealership_reports.features.masters.models",
    "aerich.models",  # For Aerich migrations
]

TORTOISE_ORM_CONFIG = {
    "connections": {"default": DATABASE_URL},
    "apps": {
        "models": {
            "models": MODEL_MODULES,
            "default_connection": "default",
        }
    },
}
