"""myboard entrypoint.

Run with:
  python -m myboard
"""

import logging
import os

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    load_dotenv()
    level = os.getenv("BOARD_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host = os.getenv("BOARD_HOST", "0.0.0.0")
    port = int(os.getenv("BOARD_PORT", "3000"))
    reload = os.getenv("BOARD_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("myboard.app:app", host=host, port=port, reload=reload, log_level=level.lower())

if __name__ == "__main__":
    main()
