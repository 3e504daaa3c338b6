"""Category handlers in run and report order."""

from typing import List

from libprobe.checkers.auth import AuthBypass, JwtTamper, MassAssignment
from libprobe.checkers.blind import BlindBoolean, TimeBased
from libprobe.checkers.database import (
    DataExfiltration, Manipulation, SchemaExtraction, SecondOrder, StoredProcedure,
)
from libprobe.checkers.input import (
    ErrorHandling, ExtremeInput, InputValidation, PathTraversal, TypeConfusion,
)
from libprobe.checkers.logic import BusinessLogic, DeleteEndpoint, PutEndpoint
from libprobe.checkers.sqli import (
    ClassicInjection, EnhancedInjection, ErrorBasedInjection, ErrorDisclosure,
)

CHECKERS = [
    SchemaExtraction,
    DataExfiltration,
    Manipulation,
    StoredProcedure,
    BlindBoolean,
    TimeBased,
    ErrorBasedInjection,
    SecondOrder,
    ErrorDisclosure,
    ClassicInjection,
    EnhancedInjection,
    TypeConfusion,
    PathTraversal,
    AuthBypass,
    InputValidation,
    ExtremeInput,
    MassAssignment,
    ErrorHandling,
    JwtTamper,
    BusinessLogic,
    PutEndpoint,
    DeleteEndpoint,
]

CATEGORY_ORDER = [c.category for c in CHECKERS]


def default_checkers() -> List:
    return [cls() for cls in CHECKERS]


def by_category(category: str):
    for cls in CHECKERS:
        if cls.category == category:
            return cls()
    raise KeyError(category)
