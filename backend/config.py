import os
import datetime
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///medsys.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_ACCESS_TOKEN_EXPIRES = datetime.timedelta(hours=24)

    # "database" persiste no banco relacional; "local" grava um JSON por médico
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "database")
    LOCAL_STORE_DIR = os.getenv("LOCAL_STORE_DIR", os.path.join(os.path.dirname(__file__), "local_data"))

    PRESCRIPTION_VALIDITY_DAYS = int(os.getenv("PRESCRIPTION_VALIDITY_DAYS", 60))
    PRESCRIPTION_WARNING_DAYS = int(os.getenv("PRESCRIPTION_WARNING_DAYS", 7))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    RATELIMIT_ENABLED = True

class DevConfig(Config):
    DEBUG = True

class ProdConfig(Config):
    DEBUG = False

class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STORAGE_BACKEND = "database"
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "WARNING"
