from __future__ import annotations

from django.contrib.auth import get_user_model

from .models import AuditLog


def log_action(  # noqa: PLR0913
    action: str,
    *,
    actor: object | None = None,
    message: str = "",
    model_name: str = "",
    record_id: object | None = None,
    before: dict | list | None = None,
    after: dict | list | None = None,
) -> AuditLog:
    """Persist one audit entry; `actor` may be a User or a bare user id."""

    user_model = get_user_model()
    actor_id = None
    if isinstance(actor, user_model):
        actor_id = actor.pk
    elif isinstance(actor, int) and not isinstance(actor, bool):
        actor_id = actor
    return AuditLog.objects.create(
        action=action,
        actor_id=actor_id,
        message=message,
        model_name=model_name,
        record_id="" if record_id is None else str(record_id),
        before=before,
        after=after,
    )
