# api/routes_newsletter.py
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from shopdesk.api.deps import current_user, get_cfg, get_email_sender, get_store
from shopdesk.core.services.newsletter import NewsletterService

router = APIRouter()


class NewsletterIn(BaseModel):
    subject: Optional[str] = None
    content: Optional[str] = None
    recipients: Optional[Union[List[str], str]] = None


def _service(store, sender, cfg) -> NewsletterService:
    return NewsletterService(store, sender, batch_size=cfg.newsletter["batch_size"])


@router.post("/newsletter/send")
def send_newsletter(payload: NewsletterIn, user=Depends(current_user), store=Depends(get_store),
                    sender=Depends(get_email_sender), cfg=Depends(get_cfg)):
    result = _service(store, sender, cfg).send(payload.subject, payload.content, payload.recipients)
    return {"message": "Newsletter sent successfully", **result}


@router.post("/newsletter/process-emails")
def process_emails(jobId: Optional[str] = Query(None), user=Depends(current_user),
                   store=Depends(get_store), sender=Depends(get_email_sender), cfg=Depends(get_cfg)):
    result = _service(store, sender, cfg).process_job(jobId)
    return {"message": "Emails processed successfully", **result}
