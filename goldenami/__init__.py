"""goldenami: golden machine image lifecycle selection and build validation.

Keeps an append-only, per-environment history of built images, selects the
latest valid image for deployment, and validates builds against a policy.
"""

__version__ = "0.1.0"
__description__ = "Golden image lifecycle selector and build validator"

from goldenami.core.selector import ImageSelector, IngestReceipt
from goldenami.core.validator import validate
from goldenami.models.images import ImageRecord, ImageState
from goldenami.models.validation import ValidationPolicy, ValidationResult

__all__ = [
    "ImageSelector",
    "IngestReceipt",
    "ImageRecord",
    "ImageState",
    "ValidationPolicy",
    "ValidationResult",
    "validate",
    "__version__",
]
