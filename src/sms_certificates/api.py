from fastapi import APIRouter

from sms_certificates.modules.certificates import router as certificates_router
from sms_certificates.modules.certificates import template_router as certificate_templates_router

api_router = APIRouter()

api_router.include_router(
    certificate_templates_router,
    prefix="/certificate-templates",
    tags=["Certificate Templates"],
)

api_router.include_router(certificates_router, prefix="/certificates", tags=["Certificates"])
