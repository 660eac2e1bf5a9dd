import logging
import os

import uvicorn
from dotenv import load_dotenv

# Load .env from the project dir before the app reads its settings.
load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from app.config import get_settings  # noqa: E402
from app.main import app  # noqa: E402

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    logger.info("Server running on port %d (env=%s)", settings.port, settings.app_env)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
