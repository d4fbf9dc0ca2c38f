from fastapi import APIRouter, status

router = APIRouter()


@router.get("/health", name="health", status_code=status.HTTP_200_OK)
async def health_check():
    """Liveness probe"""
    return {"status": "ok"}
