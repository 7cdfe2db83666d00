"""Application configuration."""
import json
import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_device(name: str):
    """Device spec as JSON, e.g. {"type": "serial", "port": "/dev/ttyUSB0"}."""
    value = os.environ.get(name)
    return json.loads(value) if value else None


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_DIR = os.environ.get("LOG_DIR")  # file logging off when unset

    # Ticket layout
    DEFAULT_PRINTER_WIDTH = int(os.environ.get("PRINTER_WIDTH", 32))  # characters per line
    PRINTER_CODE_PAGE = os.environ.get("PRINTER_CODE_PAGE", "cp850")
    CURRENCY = os.environ.get("CURRENCY", "MAD")

    # Delivery tiers, in priority order
    PRINT_TRANSPORTS = os.environ.get("PRINT_TRANSPORTS", "direct,host,manual").split(",")

    # Direct channel
    PRINTER_DEVICE = _env_device("PRINTER_DEVICE")
    PRINTER_BAUDRATE = int(os.environ.get("PRINTER_BAUDRATE", 9600))
    DEVICE_GRANT_TIMEOUT = float(os.environ.get("DEVICE_GRANT_TIMEOUT", 5))

    # Host print service: cups, windows or none
    HOST_PRINT_BACKEND = os.environ.get("HOST_PRINT_BACKEND", "windows" if os.name == "nt" else "cups")
    HOST_PRINTER_NAME = os.environ.get("HOST_PRINTER_NAME")
    HOST_PRINT_RAW = _env_bool("HOST_PRINT_RAW", True)
    HOST_PRINT_COPIES = int(os.environ.get("HOST_PRINT_COPIES", 1))
    HOST_PRINT_DUPLEX = _env_bool("HOST_PRINT_DUPLEX", False)
    HOST_PRINT_MARGINS = os.environ.get("HOST_PRINT_MARGINS", "none")

    # Manual fallback: preview (web page) or file
    FALLBACK_MODE = os.environ.get("FALLBACK_MODE", "preview")
    FALLBACK_DIR = os.environ.get("FALLBACK_DIR", os.path.join(os.path.dirname(basedir), "instance", "tickets"))
    FALLBACK_CAPACITY = int(os.environ.get("FALLBACK_CAPACITY", 50))

    # Seconds between customer and staff copies
    COPY_DELAY = float(os.environ.get("COPY_DELAY", 2.0))


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = "DEBUG"
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(os.path.dirname(basedir), 'instance', 'tickets.db')}"
    )


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(os.path.dirname(basedir), 'instance', 'tickets.db')}"
    )


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_DIR = None
    PRINTER_DEVICE = None
    DEVICE_GRANT_TIMEOUT = 0
    HOST_PRINT_BACKEND = "none"
    FALLBACK_MODE = "preview"
    COPY_DELAY = 0


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
