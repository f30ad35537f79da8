import typing as t

import annotated_types as ant

from edufam.model import BulkValidationPolicy

from .base import BaseSettings


class GradingSettings(BaseSettings):
    """Tunables of the grading workflows.

    `bulk_validation` decides what happens to a bulk upload with bad rows:
    `reject_all` saves nothing, `skip_invalid` saves the valid rows and reports
    the rest.
    """

    bulk_validation: BulkValidationPolicy = BulkValidationPolicy.RejectAll
    analytics_timeout_seconds: t.Annotated[float, ant.Gt(0)] = 5.0
    audit_retry_attempts: t.Annotated[int, ant.Ge(1)] = 3
