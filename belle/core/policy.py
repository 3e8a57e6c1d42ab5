"""
Row-level access policy.

All authorization decisions go through ``can_access``; services call
``ensure_access`` before touching a row and ``scope_statement`` before
listing rows, so the rules live in one table instead of scattered checks.
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy import select

from belle.core.exceptions import PermissionDeniedError
from belle.models import (
    Appointment,
    CashRegisterClosing,
    CashRegisterTransaction,
    Patient,
    Procedure,
)


class Entity(str, Enum):
    PROFILES = "profiles"
    PROCEDURES = "procedures"
    PATIENTS = "patients"
    APPOINTMENTS = "appointments"
    CLOSINGS = "cash_register_closings"
    TRANSACTIONS = "cash_register_transactions"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ADMINISTER = "administer"


Rule = Callable[[Any, Any], bool]


def _super_admin(identity, row) -> bool:
    return identity.is_super_admin


def _anyone(identity, row) -> bool:
    return True


def _owner_or_super_admin(identity, row) -> bool:
    if identity.is_super_admin:
        return True
    return row is None or row.professional_id == identity.profile_id


def _owner(identity, row) -> bool:
    return row is None or row.professional_id == identity.profile_id


def _self_or_super_admin(identity, row) -> bool:
    return identity.is_super_admin or row is None or row.id == identity.profile_id


def _active_or_super_admin(identity, row) -> bool:
    return identity.is_super_admin or row is None or bool(row.is_active)


def _appointment_create(identity, row) -> bool:
    if identity.is_super_admin:
        return True
    if row is None:
        return True
    return row.professional_id == identity.profile_id and row.created_by == identity.profile_id


def _closing_update(identity, row) -> bool:
    if identity.is_super_admin:
        return True
    return _owner(identity, row) and (row is None or not row.is_finalized)


# For transactions the row handed to the rule is the parent closing.
def _transaction_create(identity, closing) -> bool:
    if identity.is_super_admin:
        return True
    return _owner(identity, closing) and (closing is None or not closing.is_finalized)


POLICIES: Dict[Tuple[Entity, Action], Rule] = {
    (Entity.PROFILES, Action.READ): _anyone,
    (Entity.PROFILES, Action.CREATE): _super_admin,
    (Entity.PROFILES, Action.UPDATE): _self_or_super_admin,
    (Entity.PROFILES, Action.ADMINISTER): _super_admin,

    (Entity.PROCEDURES, Action.READ): _active_or_super_admin,
    (Entity.PROCEDURES, Action.CREATE): _super_admin,
    (Entity.PROCEDURES, Action.UPDATE): _super_admin,

    (Entity.PATIENTS, Action.READ): _owner_or_super_admin,
    (Entity.PATIENTS, Action.CREATE): _owner_or_super_admin,
    (Entity.PATIENTS, Action.UPDATE): _owner_or_super_admin,

    (Entity.APPOINTMENTS, Action.READ): _owner_or_super_admin,
    (Entity.APPOINTMENTS, Action.CREATE): _appointment_create,
    (Entity.APPOINTMENTS, Action.UPDATE): _owner_or_super_admin,

    (Entity.CLOSINGS, Action.READ): _owner_or_super_admin,
    (Entity.CLOSINGS, Action.CREATE): _owner,
    (Entity.CLOSINGS, Action.UPDATE): _closing_update,

    (Entity.TRANSACTIONS, Action.READ): _owner_or_super_admin,
    (Entity.TRANSACTIONS, Action.CREATE): _transaction_create,
    (Entity.TRANSACTIONS, Action.DELETE): _owner_or_super_admin,
}


def can_access(identity, entity: Entity, action: Action, row: Optional[Any] = None) -> bool:
    """Evaluate the policy for ``identity`` performing ``action`` on ``row``.

    Pairs without a rule are denied.
    """
    if identity is None:
        return False
    rule = POLICIES.get((Entity(entity), Action(action)))
    if rule is None:
        return False
    return rule(identity, row)


def ensure_access(identity, entity: Entity, action: Action, row: Optional[Any] = None) -> None:
    if not can_access(identity, entity, action, row):
        raise PermissionDeniedError(
            f"Not allowed to {Action(action).value} {Entity(entity).value}",
            entity=Entity(entity).value,
            action=Action(action).value,
        )


def scope_statement(stmt, model, identity):
    """Restrict a select() on ``model`` to the rows ``identity`` may read."""
    if identity.is_super_admin:
        return stmt
    if model is Procedure:
        return stmt.where(Procedure.is_active.is_(True))
    if model in (Patient, Appointment, CashRegisterClosing):
        return stmt.where(model.professional_id == identity.profile_id)
    if model is CashRegisterTransaction:
        own_closings = select(CashRegisterClosing.id).where(
            CashRegisterClosing.professional_id == identity.profile_id
        )
        return stmt.where(CashRegisterTransaction.closing_id.in_(own_closings))
    return stmt
