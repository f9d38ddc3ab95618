# checkin/core/metrics.py
from prometheus_client import Counter

REDEMPTIONS = Counter(
    "checkin_redemptions_total",
    "Tentativas de check-in por resultado",
    ["outcome"],
)

CREDIT_FAILURES = Counter(
    "checkin_credit_failures_total",
    "Créditos de pontos que falharam e ficaram pendentes",
)

ACTIVE_SESSION_ANOMALIES = Counter(
    "checkin_active_session_anomalies_total",
    "Leituras que encontraram mais de uma sessão efetivamente ativa",
)
