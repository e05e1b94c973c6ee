import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev_secret_key')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', SECRET_KEY)
    SESSION_EXPIRE = os.getenv('SESSION_EXPIRE', '30d')
    SESSION_COOKIE_SECURE_FLAG = _flag('SESSION_COOKIE_SECURE', 'true')
    # the credential cookie is called "session", keep Flask's own cookie out of its way
    SESSION_COOKIE_NAME = 'flask_session'

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URI', 'sqlite:///blog.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join('static', 'uploads'))
    STORAGE_ADAPTER = os.getenv('STORAGE_ADAPTER', 'PUBLIC')
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', 64 * 1024 * 1024))

    PORT = int(os.getenv('PORT', '8080'))
    SETUP_START = os.getenv('SETUP_START', '2024-12-01')
    SETUP_DAYS = int(os.getenv('SETUP_DAYS', '24'))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', '')

    OPEN_REGISTRATION = _flag('OPEN_REGISTRATION', 'true')
