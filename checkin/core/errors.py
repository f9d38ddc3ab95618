# checkin/core/errors.py
"""Erros de domínio do check-in.

Todos são recuperáveis: a camada HTTP traduz cada um para um status e um
envelope ``{"code", "message", "kind", "details"}``. O ``kind`` orienta o
scanner sobre o que mostrar ao participante.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

# dicas para a UI do scanner
KIND_ALREADY_CHECKED_IN = "already_checked_in"
KIND_GET_NEW_CODE = "get_new_code"
KIND_WRONG_CODE = "wrong_code"
KIND_INVALID_REQUEST = "invalid_request"
KIND_CONFLICT = "conflict"


class CheckinError(Exception):
    code = "CHECKIN_ERROR"
    status_code = 400
    kind = KIND_INVALID_REQUEST
    default_message = "Erro no check-in."

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "kind": self.kind,
            "details": self.details or None,
        }


class InvalidInput(CheckinError):
    code = "INVALID_INPUT"
    status_code = 422
    default_message = "Parâmetros inválidos."


class ActiveSessionExists(CheckinError):
    code = "ACTIVE_SESSION_EXISTS"
    status_code = 409
    kind = KIND_CONFLICT
    default_message = "Já existe uma sessão ativa; encerre-a antes de criar outra."


class InvalidTransition(CheckinError):
    code = "INVALID_TRANSITION"
    status_code = 409
    kind = KIND_CONFLICT
    default_message = "Transição de estado inválida."


class SessionNotFound(CheckinError):
    code = "SESSION_NOT_FOUND"
    status_code = 404
    kind = KIND_GET_NEW_CODE
    default_message = "Sessão não encontrada."


class CodeMismatch(CheckinError):
    code = "CODE_MISMATCH"
    status_code = 400
    kind = KIND_WRONG_CODE
    default_message = "Código não confere com a sessão."


class SessionNotActive(CheckinError):
    code = "SESSION_NOT_ACTIVE"
    status_code = 409
    kind = KIND_GET_NEW_CODE
    default_message = "A sessão não está aceitando check-ins no momento."


class SessionExpired(CheckinError):
    code = "SESSION_EXPIRED"
    status_code = 410
    kind = KIND_GET_NEW_CODE
    default_message = "A sessão expirou."


class AlreadyRedeemed(CheckinError):
    code = "ALREADY_REDEEMED"
    status_code = 409
    kind = KIND_ALREADY_CHECKED_IN
    default_message = "Você já registrou presença nesta sessão."


class PartialFailure(CheckinError):
    """Presença gravada, mas o crédito de pontos ficou pendente.

    Só registro de log: nunca é levantada nem vira resposta HTTP. O engine
    monta a falha, loga ``code`` + ``details`` e deixa o crédito para a
    varredura de reconciliação.
    """

    code = "PARTIAL_FAILURE"
    default_message = "Presença registrada; crédito de pontos pendente."


class LedgerError(Exception):
    """Falha do serviço de pontos (colaborador externo)."""
