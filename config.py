import os


class BaseConfig:
    # Security
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")

    # 🗄Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///delegate.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_TO_FILE = True

    # Commissions
    COMMISSION_AMOUNT = int(
        os.getenv("COMMISSION_AMOUNT", 500)
    )

    # Auto alerts (pending commissions / courses ending soon)
    ALERTS_ENABLED = os.getenv("ALERTS_ENABLED", "1") == "1"
    COURSE_ENDING_DAYS = int(
        os.getenv("COURSE_ENDING_DAYS", 7)
    )

    # Remote backend (not wired yet: this server is the REST surface)
    USE_CLOUD_API = False
    API_BASE_URL = os.getenv("API_BASE_URL", "https://your-backend-api.com/api")

    # Spreadsheet import guard
    IMPORT_MAX_ROWS = int(
        os.getenv("IMPORT_MAX_ROWS", 10000)
    )


class DevConfig(BaseConfig):
    DEBUG = True


class ProdConfig(BaseConfig):
    DEBUG = False


class TestConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_TO_FILE = False
    ALERTS_ENABLED = False
