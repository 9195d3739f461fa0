"""
main.py
========
Central entry point for the Lectern service.

Run with:
    uvicorn main:app --reload
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()  # Load .env before any module reads env vars

# Configure logging for the entire application
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Keep provider SDK transport chatter out of the service log
for _transport_logger_name in (
    "openai",
    "openai._base_client",
    "httpx",
    "httpcore",
    "urllib3",
):
    logging.getLogger(_transport_logger_name).setLevel(logging.WARNING)

from lectern.api import create_app  # noqa: E402
from lectern.config import Settings  # noqa: E402

app = create_app(settings=Settings.from_env())

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
