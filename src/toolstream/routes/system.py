from fastapi import APIRouter

from ..version import get_version


def build_system_routes() -> APIRouter:
    router = APIRouter(tags=["system"])

    @router.get("/health")
    async def health():
        return {"status": "ok"}

    @router.get("/version")
    async def version():
        return {"version": get_version()}

    return router


__all__ = ["build_system_routes"]
