"""Development entry point: ``python run.py`` from the backend directory."""

import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()


def main() -> None:
    is_dev = os.getenv("APP_ENV", "development") == "development"
    uvicorn.run(
        "portal.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=is_dev,
        log_level=os.getenv("LOG_LEVEL", "debug" if is_dev else "info").lower(),
        proxy_headers=not is_dev,
    )


if __name__ == "__main__":
    main()
