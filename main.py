import uvicorn

from reservations.config import settings

if __name__ == "__main__":
    print("🚀 Starting table reservations service...")

    # Start the server
    uvicorn.run(
        "reservations.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower()
    )
