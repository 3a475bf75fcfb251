"""
Company-scoped query helpers.

Every get-by-id in ProFlow goes through these helpers instead of
Model.query.get(pk) or db.session.get(Model, pk). A direct .get() would
bypass tenant isolation.

Usage:
    project = get_scoped(Project, project_id, company_id=company_id)

    # Scope by project_id as well (sprints/tasks inside a known project)
    sprint = get_scoped(Sprint, sprint_id, company_id=cid, project_id=pid)

Each keyword argument maps directly to a column name on the model. If the
model does not have that column, a ValueError is raised at call time.
"""

import logging

from sqlalchemy import select

from proflow.core.exceptions import NotFoundError
from proflow.models import db

logger = logging.getLogger(__name__)


def _build_stmt(model, pk, scopes):
    provided = {k: v for k, v in scopes.items() if v is not None}
    if not provided:
        raise ValueError(
            f"{model.__name__} id={pk} requires at least one scope filter. "
            "Unscoped lookups are forbidden — they bypass tenant isolation."
        )
    missing = [field for field in provided if not hasattr(model, field)]
    if missing:
        raise ValueError(
            f"{model.__name__} has no column(s) {sorted(missing)}; "
            "refusing to perform a partially scoped lookup."
        )
    stmt = select(model).where(model.id == pk)
    for field, value in provided.items():
        stmt = stmt.where(getattr(model, field) == value)
    return stmt, provided


def get_scoped(model, pk, *, company_id=None, project_id=None, user_id=None):
    """Fetch a single entity by PK with mandatory scope filter.

    Cross-company access is indistinguishable from a missing record: both
    raise NotFoundError → HTTP 404.

    Raises:
        ValueError: no scope given, or a scope names a column the model lacks.
        NotFoundError: entity absent OR outside the given scope.
    """
    stmt, applied = _build_stmt(
        model, pk, {"company_id": company_id, "project_id": project_id, "user_id": user_id},
    )
    result = db.session.execute(stmt).scalar_one_or_none()
    if result is None:
        logger.debug("get_scoped: %s id=%s not found in scope %s", model.__name__, pk, applied)
        raise NotFoundError(resource=model.__name__, resource_id=pk, company_id=company_id)
    return result
