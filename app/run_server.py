import uvicorn

from config.settings import settings


def main():
    print(f"[SERVER] listening on http://{settings.HOST}:{settings.PORT}")

    uvicorn.run(
        "app.server:app",
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    main()
