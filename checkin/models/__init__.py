# checkin/models/__init__.py
# Carrega módulos para registrar tabelas no metadata:
from checkin.models.attendance_session import AttendanceSession, SessionStatus, EffectiveStatus  # noqa: F401
from checkin.models.redemption import Redemption  # noqa: F401
from checkin.models.ledger import PointLedgerEntry  # noqa: F401
from checkin.models.audit import AuditLog  # noqa: F401
from checkin.models.idempotency import IdempotencyKey  # noqa: F401
