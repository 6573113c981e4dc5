import uvicorn

from giftpoints_api.core.settings import settings


def main() -> None:
    uvicorn.run(
        "giftpoints_api.app:create_app",
        factory=True,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    main()
