"""Application configuration."""
import os


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # USB transport
    USB_VENDOR_IDS = None  # None uses USBDriver.KNOWN_VENDORS
    USB_OUT_ENDPOINT = 0x01
    USB_TIMEOUT_MS = int(os.environ.get("USB_TIMEOUT_MS", 5000))

    # Serial transport
    SERIAL_PORT = os.environ.get("SERIAL_PORT")  # None picks the first port found
    SERIAL_BAUDRATE = 9600
    SERIAL_WRITE_TIMEOUT = _env_float("SERIAL_WRITE_TIMEOUT", 5.0)

    # System print dialog
    PRINT_SETTLE_DELAY = 0.5  # seconds before the print flow is triggered
    SYSTEM_PRINT_COMMAND = os.environ.get("SYSTEM_PRINT_COMMAND", "lp")


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
