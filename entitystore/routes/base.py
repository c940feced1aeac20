from fastapi import APIRouter

from .. import PACKAGE_VERSION

router = APIRouter()

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/version")
def version():
    return {"app": "customer-store-api", "version": PACKAGE_VERSION}
