"""Health check used by the chat client to set its online flag."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "message": "Server is running"}
