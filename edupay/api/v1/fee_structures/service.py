from typing import List, Optional

from fastapi import status

from edupay.core.config import settings
from edupay.core.domain import Actor, FeeComponent, FeeStructure
from edupay.core.exceptions import ServiceError
from edupay.core.store import LedgerStore

from .schemas import FeeComponentIn, FeeStructureCreate, FeeStructureResponse, FeeStructureUpdate


def _to_response(structure: FeeStructure) -> FeeStructureResponse:
    return FeeStructureResponse.model_validate(structure.model_dump())


def _components(items: List[FeeComponentIn]) -> List[FeeComponent]:
    names = [c.name.strip() for c in items]
    if len(set(n.lower() for n in names)) != len(names):
        raise ServiceError("Component names must be unique within a structure", status.HTTP_400_BAD_REQUEST)
    return [FeeComponent(name=name, amount=c.amount) for name, c in zip(names, items)]


def list_structures(ledger: LedgerStore, session: Optional[str] = None) -> List[FeeStructureResponse]:
    session = session or settings.current_session
    scope = ledger.session_scope(session)
    return [_to_response(st) for st in sorted(scope.structures, key=lambda st: st.class_name)]


def get_structure(ledger: LedgerStore, structure_id: str) -> FeeStructureResponse:
    structure = ledger.get_structure(structure_id)
    if structure is None:
        raise ServiceError("Fee structure not found", status.HTTP_404_NOT_FOUND)
    return _to_response(structure)


async def create_structure(
    ledger: LedgerStore, payload: FeeStructureCreate, actor: Actor
) -> FeeStructureResponse:
    structure = await ledger.save_structure(
        payload.class_name.strip(),
        payload.academic_year or settings.current_session,
        _components(payload.components),
        actor,
    )
    return _to_response(structure)


async def update_structure(
    ledger: LedgerStore, structure_id: str, payload: FeeStructureUpdate, actor: Actor
) -> FeeStructureResponse:
    existing = ledger.get_structure(structure_id)
    if existing is None:
        raise ServiceError("Fee structure not found", status.HTTP_404_NOT_FOUND)
    structure = await ledger.save_structure(
        (payload.class_name or existing.class_name).strip(),
        existing.academic_year,
        _components(payload.components),
        actor,
        structure_id=structure_id,
    )
    return _to_response(structure)


async def delete_structure(ledger: LedgerStore, structure_id: str, actor: Actor) -> None:
    await ledger.delete_structure(structure_id, actor)
