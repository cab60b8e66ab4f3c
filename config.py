import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "mysecretkey")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///tasks.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    PROJECTS_PER_PAGE = int(os.environ.get("PROJECTS_PER_PAGE", 15))
    TASKS_PER_PAGE = int(os.environ.get("TASKS_PER_PAGE", 15))
    DUE_SOON_DAYS = int(os.environ.get("DUE_SOON_DAYS", 7))
    MAX_DUE_SOON_DAYS = 366
    MAX_PER_PAGE = 100

    DASHBOARD_RECENT_PROJECTS = 5
    DASHBOARD_RECENT_TASKS = 10


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    BCRYPT_LOG_ROUNDS = 4
    LOG_LEVEL = "WARNING"
