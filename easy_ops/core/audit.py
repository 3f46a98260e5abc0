# easy_ops/core/audit.py
import logging

logger = logging.getLogger("audit")


def audit_log(
    action: str,
    entity: str,
    entity_id: int | str,
    actor_id: str | None,
    metadata: dict | None = None,
):
    logger.info(
        "AUDIT | %s | %s:%s | actor=%s | %s",
        action,
        entity,
        entity_id,
        actor_id or "system",
        metadata or {},
    )


def integrity_warning(
    problem: str,
    entity: str,
    entity_id: int | str,
    metadata: dict | None = None,
):
    """Stock and ledger disagree; an operator or the reconcile job has to repair it."""
    logger.error(
        "INTEGRITY | %s | %s:%s | %s",
        problem,
        entity,
        entity_id,
        metadata or {},
    )
