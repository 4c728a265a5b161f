from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field

from partyhub.utils.rate_limit import optional_rate_limit
from . import service as contact_service

# module partyhub.contact.views
router = APIRouter(prefix="/api/v1/contact", tags=["Contact API"])

class ContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = None
    subject: str = Field(min_length=1, max_length=300)
    message: str = Field(min_length=1, max_length=5000)

@router.post("", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_contact(req: ContactRequest):
    result = contact_service.submit_contact(req.name, req.email, req.subject, req.message, phone=req.phone)
    return JSONResponse(result)
