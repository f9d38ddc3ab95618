# checkin/crud/audit.py
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from checkin.models.audit import AuditLog


def record(db: Session, *, actor: Optional[str], entity: str, entity_id: Optional[str],
           action: str, diff: Optional[Dict[str, Any]] = None) -> AuditLog:
    # entra na mesma transação da operação auditada
    log = AuditLog(actor=actor, entity=entity, entity_id=entity_id, action=action, diff_json=diff)
    db.add(log)
    return log
