import uvicorn

from ip_lookup.config import get_settings
from ip_lookup.logger import build_log_config


def main() -> None:
    """Run the FastAPI application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "ip_lookup.main:app",
        host=settings.host,
        port=settings.port,
        log_config=build_log_config(),
    )


if __name__ == "__main__":
    main()
