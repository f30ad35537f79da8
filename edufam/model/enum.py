import enum


class DeploymentEnvironment(enum.Enum):
    """Selects `config/env.d/<value>/`; Local reads the base files only."""

    Local = "local"
    Test = "test"
    Staging = "staging"
    Production = "production"


class BulkValidationPolicy(enum.Enum):
    # nothing is saved while any row is invalid
    RejectAll = "reject_all"
    # valid rows are saved, invalid ones reported
    SkipInvalid = "skip_invalid"
