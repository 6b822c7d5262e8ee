import uvicorn

from stock_monitor.config import settings


def main() -> None:
    uvicorn.run(
        "stock_monitor.main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
