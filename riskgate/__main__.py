"""Run the login risk API: python -m riskgate"""

import uvicorn

from .config import settings


def main() -> None:
    uvicorn.run(
        "riskgate.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.app_log_level.lower(),
    )


if __name__ == "__main__":
    main()
