import os
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret")

    # Store directories and the credential file
    DATA_DIR = os.getenv("CMS_DATA_DIR", os.path.join(BASE_DIR, "data"))
    IMAGE_DIR = os.getenv("CMS_IMAGE_DIR", os.path.join(BASE_DIR, "images"))
    USERS_FILE = os.getenv("CMS_USERS_FILE", os.path.join(BASE_DIR, "users.yml"))

    IMAGES_ENABLED = env_flag("CMS_IMAGES_ENABLED", True)
    MAX_CONTENT_LENGTH = int(os.getenv("CMS_MAX_UPLOAD_BYTES") or 16 * 1024 * 1024)

    LOG_LEVEL = os.getenv("CMS_LOG_LEVEL", "INFO")
