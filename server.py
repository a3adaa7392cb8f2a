import uvicorn
from loguru import logger

from dentassist.config import AppConfig
from dentassist.web.app import create_app

config = AppConfig()
app = create_app(config)


def main() -> None:
    """Serve the DentAssist API."""
    logger.info("Starting DentAssist API with database {}", config.database.url.split("://")[0])
    uvicorn.run("server:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
