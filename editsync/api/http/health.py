from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    """Проверка состояния сервиса"""
    registry = request.app.state.session_registry
    return {"status": "ok", "realtime_sessions": len(registry)}
