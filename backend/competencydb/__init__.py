# backend/competencydb/__init__.py
"""
Import ORM models from each app so that Base.metadata.create_all() sees
every table.

The actual model classes are kept in competencydb/apps/*/models.py.
"""

from . import models as core_models                                  # custom numbering
from .apps.accounts import models as accounts_models                 # users / roles / permissions
from .apps.audit import models as audit_models                       # activity log
from .apps.competencies import models as competencies_models         # competencies + levels
from .apps.training import models as training_models                 # requests, batches, attendance
from .apps.validation import models as validation_models             # VPA / VSR + logs

__all__ = [
    "core_models",
    "accounts_models",
    "audit_models",
    "competencies_models",
    "training_models",
    "validation_models",
]
