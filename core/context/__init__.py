from core.context.company_context import SYSTEM_ACTOR, ActorRef, CompanyContext
from core.context.locks import CompanyLockRegistry

__all__ = [
    "ActorRef",
    "CompanyContext",
    "CompanyLockRegistry",
    "SYSTEM_ACTOR",
]
