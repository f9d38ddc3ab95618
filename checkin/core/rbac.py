# checkin/core/rbac.py
from fastapi import Depends, HTTPException, status
from checkin.api.deps import Principal, get_current_principal

ROLE_ADMIN = "admin"          # administra histórico e reconciliação
ROLE_ORGANIZER = "organizer"  # abre/pausa/encerra sessões
ROLE_MEMBER = "member"        # participante que escaneia o QR

_HIERARCHY = [ROLE_MEMBER, ROLE_ORGANIZER, ROLE_ADMIN]
_RANK = {name: idx for idx, name in enumerate(_HIERARCHY)}


def require_min_role(min_role: str):
    if min_role not in _RANK:
        raise RuntimeError(f"Unknown role: {min_role}")
    need = _RANK[min_role]

    def dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        for r in principal.roles:
            if _RANK.get(r, -1) >= need:
                return principal
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")

    return dep
