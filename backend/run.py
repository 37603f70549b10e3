# backend/run.py
import sys

import uvicorn

from scandms.config import settings


def main():
    try:
        uvicorn.run(
            "scandms.main:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            log_level=settings.LOG_LEVEL.lower()
        )
    except Exception as e:
        print(f"Error starting the server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
