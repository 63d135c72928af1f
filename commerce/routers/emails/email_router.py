from fastapi import APIRouter, Depends

from commerce.core.dependencies import get_email_service
from commerce.schemas.emails.email_schemas import EmailCreate, EmailOut
from commerce.services.emails.email_service import EmailService
from commerce.utils.check_roles import require_role
from commerce.utils.response import APIResponse, ListData, success_response
from commerce.utils.logger import get_logger

router = APIRouter(prefix="/emails", tags=["Emails"])
logger = get_logger(__name__)


@router.post("/", response_model=APIResponse[EmailOut], status_code=201)
async def create_email_api(
    payload: EmailCreate,
    service: EmailService = Depends(get_email_service),
    user=Depends(require_role(["admin"])),
):
    logger.info("Create email", extra={"email_name": payload.name})

    email = await service.create_email(payload)
    return success_response("Email created successfully", email)


@router.get("/", response_model=APIResponse[ListData[EmailOut]])
async def list_emails_api(
    service: EmailService = Depends(get_email_service),
    user=Depends(require_role(["admin", "staff"])),
):
    data = await service.list_emails()
    return success_response("Emails fetched successfully", data)
