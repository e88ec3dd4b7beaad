import os, uvicorn, dotenv

dotenv.load_dotenv()

if __name__ == "__main__":
    uvicorn.run(
        "lazytorrentio.api.app:app",
        host=os.getenv("FASTAPI_HOST", "127.0.0.1"),
        port=int(os.getenv("FASTAPI_PORT", "7000")),
        workers=int(os.getenv("FASTAPI_WORKERS", 1)),
    )
