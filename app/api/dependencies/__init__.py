"""API-layer dependencies: request-scoped wiring (UoW, signed requests)."""

from app.api.dependencies.signed_request import SignedRequest, require_signed_request
from app.api.dependencies.unit_of_work import UnitOfWork, get_uow

__all__ = ["SignedRequest", "UnitOfWork", "get_uow", "require_signed_request"]
