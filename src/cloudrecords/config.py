import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load the appropriate .env file on module import
env = os.environ.get("CLOUDRECORDS_ENV", "development").lower()
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    # Fall back to the default .env file
    load_dotenv()

STORE_BACKENDS = ("memory", "postgres")


@dataclass
class Config:
    environment: str
    database_url: str
    store_backend: str
    container_identifier: str
    default_page_size: int
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        backend = os.environ.get("CLOUDRECORDS_STORE", "memory").lower()
        if backend not in STORE_BACKENDS:
            raise ValueError(
                f"CLOUDRECORDS_STORE must be one of {', '.join(STORE_BACKENDS)}, got {backend!r}"
            )
        return cls(
            environment=env,
            database_url=os.environ.get(
                "DATABASE_URL", "postgresql://localhost:5432/cloudrecords"
            ),
            store_backend=backend,
            container_identifier=os.environ.get("CLOUDRECORDS_CONTAINER") or "default",
            default_page_size=int(os.environ.get("CLOUDRECORDS_PAGE_SIZE", "100")),
            log_level=os.environ.get("LOG_LEVEL", "WARNING").upper(),
        )


def configure_logging(level: str = None) -> None:
    """Attach a basic handler to the package logger at the configured level."""
    logger = logging.getLogger("cloudrecords")
    logger.setLevel(level or config.log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)


config = Config.from_env()
