import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session
from models.log import AuditLog

logger = logging.getLogger(__name__)

def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None or request.client is None:
        return None
    return request.client.host

# Persist one audit entry; `meta` lands in the JSON details column
def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    db.add(AuditLog(user_id=user_id, action=action, resource=resource, status=status, ip=ip, details=meta or {}))
    db.commit()
    logger.debug(f"audit {action} {resource} {status} user={user_id}")
