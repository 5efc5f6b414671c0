# wlboard/__main__.py
"""Run the board with uvicorn: `python -m wlboard`."""

import uvicorn

from wlboard.core.config import get_settings


def main() -> None:
    settings = get_settings()
    print(f"Starting {settings.PROJECT_NAME}...")
    print(f"Local server will be available at: http://localhost:{settings.PORT}")
    uvicorn.run(
        "wlboard.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
