from typing import Optional

from meetai.config import Settings


def main(host: Optional[str] = None, port: Optional[int] = None):
    settings = Settings.from_env()

    import uvicorn
    uvicorn.run(
        "meetai.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
