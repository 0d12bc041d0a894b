"""Main FastAPI application."""

from fastapi import FastAPI

from meetbot import __version__
from meetbot.api.endpoints import router
from meetbot.utils.logging import setup_logging

setup_logging()

app = FastAPI(
    title="Meetbot",
    description="A scheduling assistant that looks up calendars through LLM tool calls.",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Scheduling",
            "description": "Ask scheduling questions answered from the meeting calendar.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("meetbot.main:app", host="0.0.0.0", port=8000, log_level="info")
